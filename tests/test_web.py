"""API tests for the Fundspace web application."""

import json

COMMUNITY_FORM = {
    "full_name": "Ada Lovelace",
    "email": "ada@example.org",
    "password": "secret1",
    "organization_type": "community-member",
    "location": ["Oakland"],
    "interests": ["Housing"],
}

NONPROFIT_FORM = {
    "full_name": "Grace Hopper",
    "email": "grace@example.org",
    "password": "secret1",
    "organization_type": "nonprofit",
    "organization_choice": "create",
    "new_organization": {"name": "Harbor Literacy", "taxonomy_code": "nonprofit.501c3"},
    "location": ["San Francisco"],
}


def signup(client, form, files=None):
    return client.post("/api/signup", data={"form": json.dumps(form)}, files=files)


def profile_header(profile_id):
    return {"X-Profile-Id": profile_id}


def register(client, email="ada@example.org", **fields):
    """Sign up a community member and return (profile id, bearer headers)."""
    result = signup(client, {**COMMUNITY_FORM, "email": email, **fields}).json()
    login = client.post("/api/auth/login", json={"email": email, "password": COMMUNITY_FORM["password"]})
    return result["user_id"], {"Authorization": f"Bearer {login.json()['access_token']}"}


def seeded_org_id(client, name):
    response = client.get("/api/organizations/search", params={"q": name})
    return response.json()["items"][0]["id"]


class TestRootAndHealth:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Fundspace"
        assert body["docs"] == "/docs"

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"]["database"] == "connected"


class TestRss:
    def test_category_is_required(self, client):
        response = client.get("/api/rss")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Category parameter is required"}

    def test_general_feed_includes_california(self, client):
        body = client.get("/api/rss", params={"category": "general"}).json()
        assert body["success"] is True
        assert [a["category"] for a in body["articles"]] == ["CalMatters", "Philanthropy Daily"]
        assert body["articles"][0]["timeAgo"] == "3h ago"

    def test_unknown_category_is_empty(self, client):
        assert client.get("/api/rss", params={"category": "sports"}).json() == {"success": True, "articles": []}


class TestListings:
    def test_grants(self, client):
        body = client.get("/api/grants").json()
        assert body["total_items"] == 7
        assert body["page"] == 1
        assert body["total_available_funding_display"] == "$1.4M"

    def test_grants_filtered_by_status_and_category(self, client):
        closed = client.get("/api/grants", params={"status": "Closed"}).json()
        assert closed["total_items"] == 2
        health = client.get("/api/grants", params={"categories": "Health"}).json()
        assert {g["title"] for g in health["items"]} == {"Community Health Research Awards", "Clinic Capacity Building"}

    def test_repeated_query_keys_become_lists(self, client):
        body = client.get("/api/grants", params=[("categories", "Health"), ("categories", "Housing")]).json()
        assert body["total_items"] == 3

    def test_camel_case_aliases(self, client):
        body = client.get("/api/grants", params={"grantStatusFilter": "Rolling"}).json()
        assert [g["title"] for g in body["items"]] == ["Clinic Capacity Building"]

    def test_sorting_and_paging(self, client):
        body = client.get("/api/grants", params={"sort": "title_asc", "page": 2, "page_size": 2}).json()
        assert body["page"] == 2
        assert body["total_pages"] == 4
        assert len(body["items"]) == 2

    def test_bad_page_falls_back_to_first(self, client):
        assert client.get("/api/grants", params={"page": "abc"}).json()["page"] == 1

    def test_directories(self, client):
        assert client.get("/api/funders").json()["total_items"] == 3
        assert client.get("/api/nonprofits").json()["total_items"] == 3
        assert client.get("/api/organizations", params={"types": "government"}).json()["total_items"] == 1

    def test_organization_search(self, client):
        body = client.get("/api/organizations/search", params={"q": "bay", "type": "foundation"}).json()
        assert [o["name"] for o in body["items"]] == ["Bay Area Community Fund"]

    def test_taxonomies(self, client):
        items = client.get("/api/taxonomies", params={"organization_type": "nonprofit"}).json()["items"]
        assert [node["code"] for node in items] == ["nonprofit"]
        assert len(items[0]["children"]) == 3


class TestSignup:
    def test_community_member_then_login(self, client):
        response = signup(client, COMMUNITY_FORM)
        assert response.status_code == 201
        result = response.json()
        assert result["status"] == "completed"
        assert result["organization_id"] is None

        login = client.post("/api/auth/login", json={"email": "ADA@example.org", "password": "secret1"})
        assert login.status_code == 200
        token = login.json()
        assert token["token_type"] == "bearer"
        assert token["profile"]["full_name"] == "Ada Lovelace"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token['access_token']}"}).json()
        assert me["id"] == result["user_id"]
        assert me["email_confirmed"] is True
        assert me["profile"]["role"] == "Community member"

    def test_create_organization_with_avatar(self, client):
        files = {"avatar": ("me.png", b"\x89PNG-avatar", "image/png")}
        result = signup(client, NONPROFIT_FORM, files=files).json()
        assert result["completed"] == ["account", "avatar", "profile", "organization"]

        organization = client.get(f"/api/profiles/{result['user_id']}/organization").json()
        assert organization["role"] == "super_admin"
        assert organization["organization"]["name"] == "Harbor Literacy"

        stored = client.get(result["avatar_url"].split("?")[0])
        assert stored.status_code == 200
        assert stored.content == b"\x89PNG-avatar"

    def test_oversized_avatar_is_skipped(self, client):
        files = {"avatar": ("big.png", b"x" * (2 * 1024 * 1024 + 1), "image/png")}
        result = signup(client, COMMUNITY_FORM, files=files).json()
        assert result["status"] == "completed"
        assert result["avatar_url"] is None

    def test_join_existing_organization(self, client):
        org_id = seeded_org_id(client, "Mission Food")
        form = {
            **NONPROFIT_FORM,
            "organization_choice": "join",
            "selected_organization": {"id": org_id, "type": "nonprofit", "name": "Mission Food Collective"},
        }
        result = signup(client, form).json()
        assert result["organization_id"] == org_id
        assert client.get(f"/api/profiles/{result['user_id']}/organization").json()["role"] == "member"

    def test_invalid_json(self, client):
        response = client.post("/api/signup", data={"form": "{not json"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_incomplete_form(self, client):
        response = signup(client, {**COMMUNITY_FORM, "location": []})
        assert response.status_code == 422
        assert response.json()["error"]["details"]["step"] == 4

    def test_duplicate_email(self, client):
        signup(client, COMMUNITY_FORM)
        response = signup(client, COMMUNITY_FORM)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SIGNUP_FAILED"
        assert response.json()["error"]["details"]["step"] == "account"

    def test_wrong_password(self, client):
        signup(client, COMMUNITY_FORM)
        response = client.post("/api/auth/login", json={"email": "ada@example.org", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401
        bad = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert bad.json()["error"]["code"] == "TOKEN_INVALID"


class TestDrafts:
    def test_save_and_resume(self, client):
        saved = client.put("/api/signup/drafts/abc", json={"step": 4, "form": COMMUNITY_FORM}).json()
        assert "password" not in saved["form"]

        draft = client.get("/api/signup/drafts/abc").json()
        assert draft["form"]["full_name"] == "Ada Lovelace"
        assert draft["step"] == 1
        assert draft["total_steps"] == 5
        assert draft["step_title"] == "Account Information"

    def test_missing_and_cleared_drafts(self, client):
        assert client.get("/api/signup/drafts/none").status_code == 404
        client.put("/api/signup/drafts/abc", json={"step": 2, "form": {"full_name": "Ada"}})
        assert client.delete("/api/signup/drafts/abc").json() == {"message": "Draft cleared"}
        assert client.get("/api/signup/drafts/abc").status_code == 404




class TestSavedGrants:
    def test_requires_sign_in(self, client):
        assert client.post("/api/grants/1/save").status_code == 401
        spoofed = client.post("/api/grants/1/save", headers=profile_header("p1"))
        assert spoofed.status_code == 401
        assert spoofed.json()["error"]["code"] == "TOKEN_INVALID"

    def test_save_list_unsave(self, client):
        profile_id, auth = register(client)
        saved = client.post("/api/grants/2/save", headers=auth).json()
        assert saved == {"grant_id": 2, "saved": True, "save_count": 1}

        items = client.get(f"/api/profiles/{profile_id}/saved-grants").json()["items"]
        assert [g["title"] for g in items] == ["Youth Arts Access Grant"]
        listed = client.get("/api/grants", params={"search": "Youth Arts"}).json()["items"]
        assert listed[0]["save_count"] == 1

        unsaved = client.delete("/api/grants/2/save", headers=auth).json()
        assert unsaved["save_count"] == 0

    def test_toggle(self, client):
        _, auth = register(client)
        first = client.post("/api/grants/3/save/toggle", headers=auth).json()
        assert first == {"grant_id": 3, "saved": True, "save_count": 1}
        second = client.post("/api/grants/3/save/toggle", headers=auth).json()
        assert second == {"grant_id": 3, "saved": False, "save_count": 0}

    def test_unknown_grant(self, client):
        _, auth = register(client)
        response = client.post("/api/grants/999/save", headers=auth)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"
        assert client.post("/api/grants/999/save/toggle", headers=auth).status_code == 404


class TestMemberships:
    def test_join_and_leave(self, client):
        profile_id, auth = register(client)
        org_id = seeded_org_id(client, "Oakland Youth")

        joined = client.post(f"/api/organizations/{org_id}/join", headers=auth)
        assert joined.json()["name"] == "Oakland Youth Arts"
        assert client.get(f"/api/profiles/{profile_id}/organization").json()["role"] == "member"

        left = client.delete(f"/api/organizations/{org_id}/membership", headers=auth)
        assert left.json() == {"message": "Left organization"}
        assert client.get(f"/api/profiles/{profile_id}/organization").status_code == 404

    def test_owner_administers_organization(self, client):
        _, owner_auth = register(client)
        member, member_auth = register(client, "bob@example.org")

        created = client.post("/api/organizations", json={"name": "Tide Pool Fund", "type": "foundation"},
                              headers=owner_auth)
        assert created.status_code == 201
        org_id = created.json()["id"]
        client.post(f"/api/organizations/{org_id}/join", headers=member_auth)

        forbidden = client.patch(f"/api/organizations/{org_id}", json={"tagline": "Mine now"}, headers=member_auth)
        assert forbidden.status_code == 403
        assert forbidden.json()["error"]["code"] == "PERMISSION_DENIED"

        updated = client.patch(f"/api/organizations/{org_id}", json={"tagline": "Shoreline grants"},
                               headers=owner_auth)
        assert updated.json()["tagline"] == "Shoreline grants"

        promoted = client.patch(f"/api/organizations/{org_id}/members/{member}", json={"role": "admin"},
                                headers=owner_auth)
        assert promoted.json()["role"] == "admin"

        removed = client.delete(f"/api/organizations/{org_id}/members/{member}", headers=owner_auth)
        assert removed.json() == {"message": "Member removed"}

        deleted = client.delete(f"/api/organizations/{org_id}", headers=owner_auth)
        assert deleted.json() == {"message": "Organization deleted"}

    def test_profile_header_cannot_impersonate_the_owner(self, client):
        owner, owner_auth = register(client)
        _, member_auth = register(client, "bob@example.org")
        org_id = client.post("/api/organizations", json={"name": "Tide Pool Fund", "type": "foundation"},
                             headers=owner_auth).json()["id"]

        spoofed = client.delete(f"/api/organizations/{org_id}", headers=profile_header(owner))
        assert spoofed.status_code == 401
        # A signed-in member's token wins over any claimed profile id
        claimed = client.delete(f"/api/organizations/{org_id}", headers={**member_auth, **profile_header(owner)})
        assert claimed.status_code == 403
        assert client.get(f"/api/profiles/{owner}/organization").json()["role"] == "super_admin"

    def test_create_needs_a_name(self, client):
        _, auth = register(client)
        response = client.post("/api/organizations", json={"type": "nonprofit"}, headers=auth)
        assert response.status_code == 422


class TestPostsAndSearches:
    def test_posts(self, client):
        assert client.post("/api/posts", json={"content": "hi"}).status_code == 401
        _, auth = register(client)
        created = client.post("/api/posts", json={"content": "Hello neighbors"}, headers=auth)
        assert created.status_code == 201
        items = client.get("/api/posts").json()["items"]
        assert [p["content"] for p in items] == ["Hello neighbors"]
        assert client.get("/api/posts", params={"channel": "funders"}).json()["items"] == []

    def test_blank_post(self, client):
        _, auth = register(client)
        response = client.post("/api/posts", json={"content": "  "}, headers=auth)
        assert response.status_code == 422

    def test_recent_searches(self, client):
        client.post("/api/recent-searches", json={"term": "housing"})
        client.post("/api/recent-searches", json={"term": "arts"})
        client.post("/api/recent-searches", json={"term": "x"})
        assert client.get("/api/recent-searches").json() == {"items": ["arts", "housing"]}
        assert client.get("/api/recent-searches", headers=profile_header("p1")).json() == {"items": []}
        assert client.delete("/api/recent-searches").json() == {"items": []}
        assert client.get("/api/recent-searches").json() == {"items": []}


class TestAvatarUpload:
    def test_replace_avatar(self, client):
        profile_id, auth = register(client)
        _, other_auth = register(client, "bob@example.org")
        files = {"file": ("new.jpg", b"jpeg-bytes", "image/jpeg")}

        assert client.post(f"/api/profiles/{profile_id}/avatar", files=files).status_code == 401
        other = client.post(f"/api/profiles/{profile_id}/avatar", files=files, headers=other_auth)
        assert other.status_code == 403

        response = client.post(f"/api/profiles/{profile_id}/avatar", files=files, headers=auth)
        assert response.status_code == 200
        assert "/storage/avatars/avatar-" in response.json()["avatar_url"]

    def test_wrong_file_type(self, client):
        profile_id, auth = register(client)
        files = {"file": ("notes.txt", b"text", "text/plain")}
        response = client.post(f"/api/profiles/{profile_id}/avatar", files=files, headers=auth)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "FILE_TYPE_ERROR"

    def test_stored_object_names_cannot_escape(self, client):
        assert client.get("/storage/avatars/..hidden").status_code == 400
        assert client.get("/storage/avatars/missing.jpg").status_code == 404


class TestFollows:
    def test_follow_and_unfollow(self, client):
        _, ada_auth = register(client)
        bob, _ = register(client, "bob@example.org")

        first = client.post(f"/api/profiles/{bob}/follow", headers=ada_auth).json()
        assert first == {"profile_id": bob, "following": True, "created": True}
        again = client.post(f"/api/profiles/{bob}/follow", headers=ada_auth).json()
        assert again["created"] is False

        removed = client.delete(f"/api/profiles/{bob}/follow", headers=ada_auth).json()
        assert removed == {"profile_id": bob, "following": False, "removed": True}

    def test_follow_unknown_profile_or_self(self, client):
        ada, auth = register(client)
        assert client.post("/api/profiles/ghost/follow", headers=auth).status_code == 404
        assert client.post(f"/api/profiles/{ada}/follow", headers=auth).status_code == 422

    def test_signup_follows(self, client):
        bob, _ = register(client, "bob@example.org")
        _, auth = register(client, follow_user_ids=[bob])
        again = client.post(f"/api/profiles/{bob}/follow", headers=auth).json()
        assert again["created"] is False
