"""
Integration tests for Project endpoints and project membership.
"""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tasklane_shared.schemas.common import OrgRole


@pytest.fixture
async def acme(register_user, create_org, add_org_member, create_project):
    """Org ``acme``: owner, admin, member, guest; project ``website`` created by the owner."""
    owner = await register_user(email="owner@acme.test", name="Owner")
    org = await create_org(owner, name="Acme", slug="acme")
    people = {"org": org, "owner": owner}
    for key, role in (
        ("admin", OrgRole.ADMIN),
        ("member", OrgRole.MEMBER),
        ("guest", OrgRole.GUEST),
    ):
        people[key] = await register_user(email=f"{key}@acme.test", name=key.title())
        await add_org_member(org, people[key], role)
    people["outsider"] = await register_user(email="outsider@else.test", name="Outsider")
    people["project"] = await create_project(org, owner, name="Website", slug="website")
    return people


BASE = "/api/v1/orgs/acme/projects"


async def _add(client, acme, actor, user, role="member"):
    return await client.post(
        f"{BASE}/website/members",
        json={"user_id": acme[user]["id"], "role": role},
        headers=acme[actor]["headers"],
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

class TestProjectCrud:
    @pytest.mark.asyncio
    async def test_member_creates_and_manages(self, client: AsyncClient, acme):
        resp = await client.post(
            BASE, json={"name": "Mobile App", "color": "#336699"}, headers=acme["member"]["headers"]
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["slug"] == "mobile-app"
        assert data["my_role"] == "manager"
        assert data["org_id"] == acme["org"]["id"]

        resp = await client.patch(
            f"{BASE}/mobile-app", json={"description": "iOS + Android"}, headers=acme["member"]["headers"]
        )
        assert resp.status_code == 200
        assert resp.json()["description"] == "iOS + Android"

    @pytest.mark.asyncio
    async def test_guest_cannot_create(self, client: AsyncClient, acme):
        resp = await client.post(BASE, json={"name": "Nope"}, headers=acme["guest"]["headers"])
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Missing permission: project:create"

    @pytest.mark.asyncio
    async def test_outsider_cannot_reach_projects(self, client: AsyncClient, acme):
        resp = await client.get(BASE, headers=acme["outsider"]["headers"])
        assert resp.status_code == 403
        resp = await client.get(f"{BASE}/website", headers=acme["outsider"]["headers"])
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_list_respects_membership(self, client: AsyncClient, acme, create_project):
        await create_project(acme["org"], acme["admin"], name="Backend", slug="backend")

        admin = await client.get(BASE, headers=acme["admin"]["headers"])
        assert sorted(p["slug"] for p in admin.json()["data"]) == ["backend", "website"]
        assert {p["my_role"] for p in admin.json()["data"]} == {"manager"}

        member = await client.get(BASE, headers=acme["member"]["headers"])
        assert member.json()["data"] == []

        await _add(client, acme, "owner", "member", role="viewer")
        member = await client.get(BASE, headers=acme["member"]["headers"])
        assert [(p["slug"], p["my_role"]) for p in member.json()["data"]] == [("website", "viewer")]

    @pytest.mark.asyncio
    async def test_get_by_slug_or_id(self, client: AsyncClient, acme):
        by_slug = await client.get(f"{BASE}/website", headers=acme["admin"]["headers"])
        by_id = await client.get(f"{BASE}/{acme['project']['id']}", headers=acme["admin"]["headers"])
        assert by_slug.status_code == by_id.status_code == 200
        assert by_slug.json()["id"] == by_id.json()["id"]
        assert by_slug.json()["my_role"] == "manager"

    @pytest.mark.asyncio
    async def test_unknown_project_not_found(self, client: AsyncClient, acme):
        resp = await client.get(f"{BASE}/nope", headers=acme["owner"]["headers"])
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_project_is_scoped_to_its_org(self, client: AsyncClient, acme, create_org, create_project):
        other = await create_org(acme["outsider"], name="Other", slug="other")
        foreign = await create_project(other, acme["outsider"], name="Secret", slug="secret")

        resp = await client.get(f"{BASE}/{foreign['id']}", headers=acme["owner"]["headers"])
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_is_soft_and_manager_only(self, client: AsyncClient, acme):
        await _add(client, acme, "owner", "member", role="member")
        denied = await client.delete(f"{BASE}/website", headers=acme["member"]["headers"])
        assert denied.status_code == 403

        resp = await client.delete(f"{BASE}/website", headers=acme["admin"]["headers"])
        assert resp.status_code == 200
        gone = await client.get(f"{BASE}/website", headers=acme["owner"]["headers"])
        assert gone.status_code == 404
        listed = await client.get(BASE, headers=acme["owner"]["headers"])
        assert listed.json()["data"] == []


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

class TestProjectMembers:
    @pytest.mark.asyncio
    async def test_scenario_member_forbidden_owner_elevated(self, client: AsyncClient, acme):
        org = await client.get("/api/v1/orgs/acme", headers=acme["member"]["headers"])
        assert org.json()["my_role"] == "member"

        member = await client.get(f"{BASE}/website", headers=acme["member"]["headers"])
        assert member.status_code == 403

        owner = await client.get(f"{BASE}/website", headers=acme["owner"]["headers"])
        assert owner.status_code == 200
        assert owner.json()["my_role"] == "manager"

    @pytest.mark.asyncio
    async def test_admin_is_implicit_manager(self, client: AsyncClient, acme):
        resp = await _add(client, acme, "admin", "member", role="viewer")
        assert resp.status_code == 201
        assert resp.json()["role"] == "viewer"

        project = await client.get(f"{BASE}/website", headers=acme["member"]["headers"])
        assert project.status_code == 200
        assert project.json()["my_role"] == "viewer"

    @pytest.mark.asyncio
    async def test_viewer_cannot_manage(self, client: AsyncClient, acme):
        await _add(client, acme, "owner", "member", role="viewer")
        resp = await _add(client, acme, "member", "guest")
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Missing permission: project:member_manage"

        resp = await client.patch(
            f"{BASE}/website", json={"name": "Renamed"}, headers=acme["member"]["headers"]
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_persisted_manager_manages(self, client: AsyncClient, acme):
        await _add(client, acme, "owner", "member", role="manager")
        resp = await _add(client, acme, "member", "guest", role="viewer")
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_target_must_belong_to_org(self, client: AsyncClient, acme):
        resp = await _add(client, acme, "owner", "outsider")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_duplicate_membership_conflicts(self, client: AsyncClient, acme):
        assert (await _add(client, acme, "owner", "member")).status_code == 201
        resp = await _add(client, acme, "owner", "member")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_update_and_remove_member(self, client: AsyncClient, acme):
        await _add(client, acme, "owner", "member")
        url = f"{BASE}/website/members/{acme['member']['id']}"

        resp = await client.patch(url, json={"role": "manager"}, headers=acme["owner"]["headers"])
        assert resp.status_code == 200
        assert resp.json()["role"] == "manager"

        resp = await client.delete(url, headers=acme["owner"]["headers"])
        assert resp.status_code == 200
        resp = await client.get(f"{BASE}/website", headers=acme["member"]["headers"])
        assert resp.status_code == 403

        resp = await client.delete(url, headers=acme["owner"]["headers"])
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_elevated_caller_has_no_row_to_edit(self, client: AsyncClient, acme):
        resp = await client.patch(
            f"{BASE}/website/members/{acme['admin']['id']}",
            json={"role": "viewer"},
            headers=acme["owner"]["headers"],
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_leaving_the_org_drops_project_memberships(self, client: AsyncClient, acme, add_org_member):
        await _add(client, acme, "owner", "member")
        resp = await client.delete(
            f"/api/v1/orgs/acme/members/{acme['member']['id']}", headers=acme["member"]["headers"]
        )
        assert resp.status_code == 200

        await add_org_member(acme["org"], acme["member"], OrgRole.MEMBER)
        resp = await client.get(f"{BASE}/website", headers=acme["member"]["headers"])
        assert resp.status_code == 403
