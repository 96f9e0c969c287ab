"""API tests: the tokens and deployment routers end to end over HTTP."""

import uuid

import pytest
from httpx import AsyncClient

from conftest import (
    ASSET_ADDRESS,
    CONTRACT_ADDRESS,
    FEE_RECIPIENT,
    PATH_TO_MINTED,
    SAMPLE_ACTOR_ID,
    SAMPLE_PROJECT_ID,
    TX_HASH,
    FakeDeployer,
    erc20_form,
    vault_form,
)

pytestmark = pytest.mark.anyio

MISSING_TOKEN_ID = "00000000-0000-0000-0000-0000000000ff"


async def _create(client: AsyncClient, form: dict) -> dict:
    resp = await client.post(
        "/v1/tokens",
        json={"project_id": str(SAMPLE_PROJECT_ID), "form": form, "actor_id": str(SAMPLE_ACTOR_ID)},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _mint(client: AsyncClient, token_id: str) -> None:
    current = "DRAFT"
    for target in PATH_TO_MINTED:
        resp = await client.post(
            f"/v1/tokens/{token_id}/transitions",
            json={"observed_status": current, "target_status": target.value},
        )
        assert resp.status_code == 200, resp.text
        current = target.value


class TestHealth:
    async def test_version_header(self, client: AsyncClient):
        resp = await client.get(f"/v1/tokens/{MISSING_TOKEN_ID}")
        assert resp.headers["X-API-Version"] == "v1"


class TestTokens:
    async def test_create_and_get(self, client: AsyncClient):
        created = await _create(client, erc20_form())

        assert created["token"]["status"] == "DRAFT"
        assert created["token"]["standard"] == "ERC-20"
        assert created["deployment"] is None

        resp = await client.get(f"/v1/tokens/{created['token']['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["form"]["name"] == "Green Bond Token"
        assert body["form"]["feeOnTransfer"]["recipient"] == FEE_RECIPIENT

    async def test_list_filters(self, client: AsyncClient):
        await _create(client, erc20_form())
        await _create(client, vault_form())

        resp = await client.get("/v1/tokens", params={"project_id": str(SAMPLE_PROJECT_ID), "standard": "erc4626"})

        assert resp.status_code == 200
        assert [token["symbol"] for token in resp.json()] == ["SYV"]

    async def test_save_form(self, client: AsyncClient):
        created = await _create(client, erc20_form())
        token_id = created["token"]["id"]

        resp = await client.patch(f"/v1/tokens/{token_id}", json={"form": {"symbol": "GBT2"}})

        assert resp.status_code == 200
        assert resp.json()["token"]["symbol"] == "GBT2"
        assert resp.json()["token"]["name"] == "Green Bond Token"

    async def test_invalid_form_is_422(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens",
            json={"project_id": str(SAMPLE_PROJECT_ID), "form": erc20_form(decimals=40)},
        )

        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "validation_failed"
        assert [issue["field"] for issue in body["detail"]] == ["decimals"]
        assert body["request_id"] == "unknown"

    async def test_missing_fields_is_422(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens",
            json={"project_id": str(SAMPLE_PROJECT_ID), "form": {"standard": "ERC-20", "name": "No Symbol"}},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "field_mapping_incomplete"

    async def test_unknown_standard_is_422(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens",
            json={"project_id": str(SAMPLE_PROJECT_ID), "form": erc20_form(standard="ERC-9999")},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "unknown_standard"

    async def test_not_found_envelope(self, client: AsyncClient):
        resp = await client.get(f"/v1/tokens/{MISSING_TOKEN_ID}", headers={"X-Request-ID": "req-123"})

        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] == "token_not_found"
        assert body["request_id"] == "req-123"

    async def test_delete(self, client: AsyncClient):
        created = await _create(client, vault_form())
        token_id = created["token"]["id"]

        resp = await client.delete(f"/v1/tokens/{token_id}")
        assert resp.status_code == 204

        resp = await client.get(f"/v1/tokens/{token_id}")
        assert resp.status_code == 404

    async def test_clone(self, client: AsyncClient):
        created = await _create(client, vault_form())

        resp = await client.post(
            f"/v1/tokens/{created['token']['id']}/clone",
            json={"overrides": {"symbol": "SYV2"}},
        )

        assert resp.status_code == 201
        clone = resp.json()
        assert clone["token"]["name"] == "Solar Yield Vault (Copy)"
        assert clone["token"]["symbol"] == "SYV2"
        assert clone["token"]["status"] == "DRAFT"
        assert len(clone["form"]["assetAllocations"]) == 2

    async def test_tiers(self, client: AsyncClient):
        parent = await _create(client, erc20_form())
        await _create(client, erc20_form(symbol="GBTC", parentTokenId=parent["token"]["id"]))

        resp = await client.get("/v1/tokens/tiers", params={"project_id": str(SAMPLE_PROJECT_ID)})

        assert resp.status_code == 200
        body = resp.json()
        assert [token["symbol"] for token in body["primary"]] == ["GBT"]
        assert [token["symbol"] for token in body["secondary_by_parent"][parent["token"]["id"]]] == ["GBTC"]


class TestTransitions:
    async def test_workflow(self, client: AsyncClient):
        created = await _create(client, erc20_form())
        token_id = created["token"]["id"]

        resp = await client.post(
            f"/v1/tokens/{token_id}/transitions",
            json={"observed_status": "draft", "target_status": "REVIEW", "notes": "ready for review"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "REVIEW"

        resp = await client.get(f"/v1/tokens/{token_id}/workflow")
        body = resp.json()
        assert body["status"] == "REVIEW"
        assert body["transition_count"] == 1
        assert set(body["available_transitions"]) == {"APPROVED", "REJECTED"}
        assert body["history"][0]["notes"] == "ready for review"

    async def test_invalid_transition_is_409(self, client: AsyncClient):
        created = await _create(client, erc20_form())

        resp = await client.post(
            f"/v1/tokens/{created['token']['id']}/transitions",
            json={"observed_status": "DRAFT", "target_status": "MINTED"},
        )

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "invalid_transition"
        assert body["detail"] == {"current": "DRAFT", "requested": "MINTED"}

    async def test_stale_observed_status_is_409(self, client: AsyncClient):
        created = await _create(client, erc20_form())
        token_id = created["token"]["id"]
        await client.post(
            f"/v1/tokens/{token_id}/transitions",
            json={"observed_status": "DRAFT", "target_status": "REVIEW"},
        )

        resp = await client.post(
            f"/v1/tokens/{token_id}/transitions",
            json={"observed_status": "DRAFT", "target_status": "REVIEW"},
        )

        assert resp.status_code == 409
        assert resp.json()["error"] == "concurrent_modification"


class TestDeployment:
    async def test_blocked_then_deployed(self, client: AsyncClient, deployer: FakeDeployer):
        created = await _create(client, vault_form(feeRecipient=""))
        token_id = created["token"]["id"]
        await _mint(client, token_id)

        resp = await client.post(f"/v1/tokens/{token_id}/deployment/validate")
        assert resp.status_code == 200
        assert resp.json()["has_issues"] is True

        resp = await client.post(f"/v1/tokens/{token_id}/deployment", json={})
        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "deployment_blocked"
        assert [finding["field"] for finding in body["detail"]] == ["feeRecipient"]

        resp = await client.patch(f"/v1/tokens/{token_id}", json={"form": {"feeRecipient": FEE_RECIPIENT}})
        assert resp.status_code == 200

        resp = await client.post(f"/v1/tokens/{token_id}/deployment", json={"environment": "testnet"})
        assert resp.status_code == 202
        assert resp.json()["status"] == "deploying"
        assert resp.json()["transaction_hash"] == TX_HASH

        resp = await client.post(
            f"/v1/tokens/{token_id}/deployment/status",
            json={"status": "success", "contract_address": CONTRACT_ADDRESS},
        )
        assert resp.status_code == 200
        assert resp.json()["explorer_url"] == f"https://sepolia.etherscan.io/address/{CONTRACT_ADDRESS}"

        resp = await client.get(f"/v1/tokens/{token_id}")
        body = resp.json()
        assert body["token"]["status"] == "DEPLOYED"
        assert body["token"]["metadata"]["address"] == CONTRACT_ADDRESS
        assert body["deployment"]["status"] == "success"

        resp = await client.patch(f"/v1/tokens/{token_id}", json={"form": {"symbol": "NOPE"}})
        assert resp.status_code == 409
        assert resp.json()["error"] == "token_not_editable"

    async def test_deployer_failure_is_502(self, client: AsyncClient, deployer: FakeDeployer):
        created = await _create(client, vault_form())
        token_id = created["token"]["id"]
        await _mint(client, token_id)
        deployer.fail_with = "Deployer returned HTTP 503"

        resp = await client.post(f"/v1/tokens/{token_id}/deployment", json={})

        assert resp.status_code == 502
        assert resp.json()["error"] == "deployer_failure"
        resp = await client.get(f"/v1/tokens/{token_id}/deployment")
        assert resp.json()["status"] == "failed"
        assert resp.json()["error_message"] == "Deployer returned HTTP 503"

    async def test_no_deployment_is_404(self, client: AsyncClient):
        created = await _create(client, vault_form())

        resp = await client.get(f"/v1/tokens/{created['token']['id']}/deployment")

        assert resp.status_code == 404
        assert resp.json()["error"] == "deployment_not_found"

    async def test_deploy_requires_minted(self, client: AsyncClient):
        created = await _create(client, vault_form())

        resp = await client.post(f"/v1/tokens/{created['token']['id']}/deployment", json={})

        assert resp.status_code == 409
        assert resp.json()["error"] == "invalid_transition"

    async def test_deploy_edge_not_requestable(self, client: AsyncClient):
        created = await _create(client, vault_form())
        token_id = created["token"]["id"]
        await _mint(client, token_id)

        resp = await client.post(
            f"/v1/tokens/{token_id}/transitions",
            json={"observed_status": "MINTED", "target_status": "DEPLOYED"},
        )

        assert resp.status_code == 409
        assert resp.json()["error"] == "invalid_transition"

    async def test_unknown_token(self, client: AsyncClient):
        resp = await client.post(f"/v1/tokens/{uuid.uuid4()}/deployment/poll")
        assert resp.status_code == 404

    async def test_late_report_is_409(self, client: AsyncClient):
        created = await _create(client, vault_form())
        token_id = created["token"]["id"]
        await _mint(client, token_id)
        await client.post(f"/v1/tokens/{token_id}/deployment", json={})
        await client.post(
            f"/v1/tokens/{token_id}/deployment/status",
            json={"status": "success", "contract_address": CONTRACT_ADDRESS},
        )

        resp = await client.post(f"/v1/tokens/{token_id}/deployment/status", json={"status": "deploying"})

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "stale_deployment_report"
        assert body["detail"] == {"current": "success", "reported": "deploying"}


class TestTemplates:
    async def test_create_list_and_use(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens/templates",
            json={
                "project_id": str(SAMPLE_PROJECT_ID),
                "name": "Vault base",
                "standard": "erc4626",
                "blocks": {"assetAddress": ASSET_ADDRESS, "assetName": "USD Coin", "assetSymbol": "USDC"},
                "metadata": {"category": "yield"},
            },
        )
        assert resp.status_code == 201, resp.text
        template = resp.json()
        assert template["standard"] == "ERC-4626"
        assert template["metadata"] == {"category": "yield"}

        resp = await client.get("/v1/tokens/templates", params={"project_id": str(SAMPLE_PROJECT_ID)})
        assert resp.status_code == 200
        assert [row["id"] for row in resp.json()] == [template["id"]]

        resp = await client.post(
            f"/v1/tokens/templates/{template['id']}/tokens",
            json={"overrides": {"name": "Harbor Vault", "symbol": "HBV"}},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["token"]["standard"] == "ERC-4626"
        assert body["token"]["status"] == "DRAFT"
        assert body["form"]["assetSymbol"] == "USDC"

    async def test_invalid_blocks_are_422(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens/templates",
            json={
                "project_id": str(SAMPLE_PROJECT_ID),
                "name": "Broken",
                "standard": "ERC-20",
                "blocks": {"decimals": 40},
            },
        )

        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_failed"

    async def test_unknown_template_is_404(self, client: AsyncClient):
        resp = await client.post(f"/v1/tokens/templates/{MISSING_TOKEN_ID}/tokens", json={})

        assert resp.status_code == 404
        assert resp.json()["error"] == "template_not_found"


class TestValidateBatch:
    async def test_summary(self, client: AsyncClient):
        resp = await client.post(
            "/v1/tokens/validate-batch",
            json={"forms": [erc20_form(), erc20_form(name="Bad Decimals", decimals=40), {"name": "Nothing"}]},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["valid"] is False
        assert body["total"] == 3
        assert body["valid_count"] == 1
        assert body["invalid_count"] == 2
        assert body["issues_by_field"] == {"decimals": 1, "standard": 1}
        assert [item["valid"] for item in body["items"]] == [True, False, False]
        assert body["items"][1]["issues"][0]["field"] == "decimals"

        resp = await client.get("/v1/tokens", params={"project_id": str(SAMPLE_PROJECT_ID)})
        assert resp.json() == []

    async def test_batch_size_limits(self, client: AsyncClient):
        resp = await client.post("/v1/tokens/validate-batch", json={"forms": []})
        assert resp.status_code == 422

        resp = await client.post("/v1/tokens/validate-batch", json={"forms": [erc20_form()] * 51})
        assert resp.status_code == 422
