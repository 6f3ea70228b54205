"""End-to-end tests for App.api: routing, id policy, CRUD, auth and collections."""

import asyncio
from datetime import datetime

import pytest

from basekit.app import App
from basekit.core.context import context
from basekit.persistence.memory import MemoryAdapter
from basekit.persistence.query import Query

from conftest import make_config


class CountingAdapter(MemoryAdapter):
    """MemoryAdapter recording every call made through the protocol."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []

    async def find(self, collection, query):
        self.calls.append(("find", collection))
        return await super().find(collection, query)

    async def find_one(self, collection, id):
        self.calls.append(("find_one", collection))
        return await super().find_one(collection, id)

    async def insert(self, collection, data):
        self.calls.append(("insert", collection))
        return await super().insert(collection, data)

    async def update(self, collection, id, patch):
        self.calls.append(("update", collection))
        return await super().update(collection, id, patch)

    async def remove(self, collection, id):
        self.calls.append(("remove", collection))
        return await super().remove(collection, id)


# =============================================================================
# Bootstrap
# =============================================================================


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_uninitialized_app_returns_500(self):
        app = App(MemoryAdapter(), make_config())
        ctx = await app.api(context(path="users"))
        assert ctx.status_code == 500
        assert ctx.result == {"error": "App not initialized", "details": None}

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, app):
        await app.initialize()
        names = [d.name for d in await app.collections.list()]
        assert names == ["_migrations", "auth-credentials", "users"]

    @pytest.mark.asyncio
    async def test_instances_share_no_state(self, app, albums):
        other = App(MemoryAdapter(), make_config())
        await other.initialize()
        assert await other.collections.get("albums") is None
        assert await app.collections.get("albums") is not None

    @pytest.mark.asyncio
    async def test_loads_yaml_definitions(self, tmp_path):
        (tmp_path / "albums.yaml").write_text(
            "collection:\n"
            "  name: albums\n"
            "  schema:\n"
            "    title: {type: string, required: true}\n"
        )
        app = App(MemoryAdapter(), make_config(collections_path=tmp_path))
        await app.initialize()

        ctx = await app.api(context(path="albums", method="create", data={"title": "X"}))
        assert ctx.status_code == 201


# =============================================================================
# Path and method resolution
# =============================================================================


class TestResolution:
    @pytest.mark.asyncio
    async def test_unknown_collection_is_404(self, call):
        ctx = await call("nope")
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    async def test_too_many_segments_is_404(self, call, albums):
        ctx = await call("albums/a/b")
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    async def test_internal_collections_are_not_routable(self, call):
        for path in ("_migrations", "auth-credentials", "_collections"):
            ctx = await call(path)
            assert ctx.status_code == 404, path

    @pytest.mark.asyncio
    async def test_template_collection_is_404(self, call, dev_token):
        await call(
            "collections",
            "create",
            {"name": "base", "schema": {"x": {"type": "string"}}, "template": True},
            token=dev_token,
        )
        ctx = await call("base")
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_method_is_405(self, call, albums):
        ctx = await call("albums", "frobnicate")
        assert ctx.status_code == 405

    @pytest.mark.asyncio
    async def test_method_aliases(self, call, albums):
        created = await call("albums", "post", {"title": "X"})
        assert created.status_code == 201

        listed = await call("albums", "list")
        assert listed.result["total"] == 1

        removed = await call(f"albums/{created.result['_id']}", "delete")
        assert removed.status_code == 200

    @pytest.mark.asyncio
    async def test_resolved_method_is_written_back(self, call, albums):
        ctx = await call("albums")
        assert ctx.method == "find"


# =============================================================================
# Id policy
# =============================================================================


class TestIdPolicy:
    @pytest.mark.asyncio
    async def test_create_on_detail_path(self, call, albums):
        ctx = await call(
            "albums/123456789012345678901234",
            "create",
            {"streams": 0, "title": "Mock Album"},
        )
        assert ctx.status_code == 405
        assert ctx.result == {
            "details": None,
            "error": "`create` method not allowed on detail path",
        }

    @pytest.mark.asyncio
    async def test_create_on_detail_path_ignores_payload_validity(self, call, albums):
        ctx = await call("albums/abc", "create", {"nonsense": True})
        assert ctx.status_code == 405

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["patch", "remove"])
    async def test_patch_and_remove_on_base_path(self, call, albums, method):
        ctx = await call("albums", method, {"streams": 100})
        assert ctx.status_code == 405
        assert ctx.result["error"] == f"`{method}` method not allowed on base path"


# =============================================================================
# Record CRUD
# =============================================================================


class TestRecords:
    @pytest.mark.asyncio
    async def test_album_lifecycle(self, call, albums):
        bad = await call("albums", "create", {"streams": 0})
        assert bad.status_code == 400
        assert bad.result["details"] == {"title": "required"}

        created = await call("albums", "create", {"title": "X"})
        assert created.status_code == 201
        album = created.result
        assert album["title"] == "X"
        assert album["streams"] == 0
        assert set(album) == {"_id", "title", "streams", "created_at", "updated_at"}
        assert isinstance(album["created_at"], datetime)
        assert isinstance(album["updated_at"], datetime)

        patched = await call(f"albums/{album['_id']}", "patch", {"streams": 100})
        assert patched.status_code == 200
        assert patched.result["streams"] == 100
        assert patched.result["title"] == "X"

        removed = await call(f"albums/{album['_id']}", "remove")
        assert removed.status_code == 200

        gone = await call(f"albums/{album['_id']}")
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_get_returns_listed_record(self, call, albums):
        await call("albums", "create", {"title": "Mock Album", "streams": 0})
        listed = await call("albums")
        assert listed.status_code == 200
        assert listed.result["total"] == 1
        [album] = listed.result["data"]

        fetched = await call(f"albums/{album['_id']}")
        assert fetched.status_code == 200
        assert fetched.result == album

    @pytest.mark.asyncio
    async def test_missing_record_is_404(self, call, albums):
        ctx = await call("albums/123456789012345678901234")
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    async def test_patch_missing_record_is_404(self, call, albums):
        ctx = await call("albums/123456789012345678901234", "patch", {"streams": 100})
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [("create", "albums"), ("patch", "albums/abc")])
    async def test_missing_data(self, call, albums, method, path):
        ctx = await call(path, method)
        assert ctx.status_code == 400
        assert ctx.result == {
            "details": "`data` is required",
            "error": "[data]: `data` is required",
        }

    @pytest.mark.asyncio
    async def test_coerces_input(self, call, albums):
        ctx = await call("albums", "create", {"title": "X", "streams": "42"})
        assert ctx.result["streams"] == 42

    @pytest.mark.asyncio
    async def test_strips_unknown_and_system_fields(self, call, albums):
        ctx = await call("albums", "create", {"title": "X", "_id": "mine", "extra": 1})
        assert ctx.status_code == 201
        assert ctx.result["_id"] != "mine"
        assert "extra" not in ctx.result

    @pytest.mark.asyncio
    async def test_strict_schema_rejects_unknown_fields(self, config, call, albums):
        config.strict_schema = True
        ctx = await call("albums", "create", {"title": "X", "extra": 1})
        assert ctx.status_code == 400
        assert ctx.result["details"] == {"extra": "unknown field"}

    @pytest.mark.asyncio
    async def test_duplicate_unique_value_is_409(self, call, dev_token):
        await call(
            "collections",
            "create",
            {
                "name": "tags",
                "schema": {"label": {"type": "string"}},
                "indexes": [{"fields": ["label"], "options": {"unique": True}}],
            },
            token=dev_token,
        )
        first = await call("tags", "create", {"label": "rock"})
        assert first.status_code == 201
        second = await call("tags", "create", {"label": "rock"})
        assert second.status_code == 409


# =============================================================================
# Listing
# =============================================================================


class TestListing:
    @pytest.mark.asyncio
    async def test_pagination_and_sort(self, call, albums):
        for i in range(5):
            await call("albums", "create", {"title": f"A{i}", "streams": i})

        ctx = await call("albums", query={"$limit": "2", "$skip": "1", "$sort": "-streams"})
        assert ctx.status_code == 200
        assert ctx.result["total"] == 5
        assert [a["streams"] for a in ctx.result["data"]] == [3, 2]

    @pytest.mark.asyncio
    async def test_equality_filter_is_coerced(self, call, albums):
        await call("albums", "create", {"title": "A", "streams": 1})
        await call("albums", "create", {"title": "B", "streams": 2})

        ctx = await call("albums", query={"streams": "2"})
        assert [a["title"] for a in ctx.result["data"]] == ["B"]

    @pytest.mark.asyncio
    async def test_sort_and_filter_on_dates(self, call, dev_token):
        await call(
            "collections",
            "create",
            {"name": "events", "schema": {"at": {"type": "date"}, "title": {"type": "string"}}},
            token=dev_token,
        )
        await call("events", "create", {"title": "late", "at": "2024-03-01T12:00:00Z"})
        await call("events", "create", {"title": "early", "at": "2024-01-01"})
        await call("events", "create", {"title": "middle", "at": "2024-02-01T00:00:00"})

        ctx = await call("events", query={"$sort": "at"})
        assert ctx.status_code == 200
        assert [e["title"] for e in ctx.result["data"]] == ["early", "middle", "late"]

        ctx = await call("events", query={"at": "2024-01-01T00:00:00Z"})
        assert [e["title"] for e in ctx.result["data"]] == ["early"]

    @pytest.mark.asyncio
    async def test_unknown_filter_field_is_400(self, call, albums):
        ctx = await call("albums", query={"nope": "1"})
        assert ctx.status_code == 400
        assert ctx.result["details"] == {"nope": "unknown field"}

    @pytest.mark.asyncio
    async def test_bad_limit_is_400(self, call, albums):
        ctx = await call("albums", query={"$limit": "-1"})
        assert ctx.status_code == 400

    @pytest.mark.asyncio
    async def test_default_page_size(self, config, call, albums):
        config.page_size = 2
        for i in range(3):
            await call("albums", "create", {"title": f"A{i}"})
        ctx = await call("albums")
        assert len(ctx.result["data"]) == 2
        assert ctx.result["total"] == 3


# =============================================================================
# Users, login and dev setup
# =============================================================================


class TestUsers:
    @pytest.mark.asyncio
    async def test_dev_setup_false_until_dev_exists(self, call, signup):
        await signup("mock-1")
        ctx = await call("_dev/dev-setup")
        assert ctx.status_code == 200
        assert ctx.result is False

        await signup("mock", role="dev")
        ctx = await call("_dev/dev-setup")
        assert ctx.result is True

    @pytest.mark.asyncio
    async def test_created_user_excludes_password(self, call):
        ctx = await call(
            "users",
            "create",
            {
                "email": "mock-1@mail.com",
                "fullname": "Mock User",
                "password": "hello",
                "role": "dev",
                "username": "mock",
            },
        )
        assert ctx.status_code == 201
        assert set(ctx.result) == {
            "_id",
            "created_at",
            "email",
            "fullname",
            "role",
            "updated_at",
            "username",
        }
        assert ctx.result["role"] == "dev"

    @pytest.mark.asyncio
    async def test_role_defaults_to_basic(self, signup):
        user = await signup("plain")
        assert user["role"] == "basic"

    @pytest.mark.asyncio
    async def test_user_requires_password(self, call):
        ctx = await call("users", "create", {"username": "x", "email": "x@mail.com"})
        assert ctx.status_code == 400
        assert ctx.result["details"] == {"password": "required"}

    @pytest.mark.asyncio
    async def test_credential_is_hashed(self, app, signup):
        user = await signup("mock")
        found = await app.db.find("auth-credentials", Query(filter={"user": user["_id"]}))
        [credential] = found["data"]
        assert credential["password"] != "hello"
        assert app.passwords.verify("hello", credential["password"])

    @pytest.mark.asyncio
    async def test_duplicate_username_is_409(self, call, signup):
        await signup("mock")
        ctx = await call(
            "users", "create", {"username": "mock", "email": "b@mail.com", "password": "x"}
        )
        assert ctx.status_code == 409

    @pytest.mark.asyncio
    async def test_login(self, call, signup):
        user = await signup("mock")
        ctx = await call("login", "create", {"username": "mock", "password": "hello"})
        assert ctx.status_code == 201
        assert ctx.result["auth"]["token"]
        assert ctx.result["user"]["_id"] == user["_id"]

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, call, signup):
        await signup("mock")
        ctx = await call("login", "create", {"username": "mock", "password": "nope"})
        assert ctx.status_code == 401

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, call):
        ctx = await call("login", "create", {"username": "ghost", "password": "x"})
        assert ctx.status_code == 401

    @pytest.mark.asyncio
    async def test_login_only_supports_create(self, call):
        ctx = await call("login")
        assert ctx.status_code == 405

    @pytest.mark.asyncio
    async def test_users_list_requires_auth(self, call, signup, login):
        await signup("mock")
        assert (await call("users")).status_code == 401

        token = await login("mock")
        ctx = await call("users", token=token)
        assert ctx.status_code == 200
        assert ctx.result["total"] == 1

    @pytest.mark.asyncio
    async def test_users_patch_requires_dev(self, call, signup, login, dev_token):
        user = await signup("plain")
        token = await login("plain")

        denied = await call(f"users/{user['_id']}", "patch", {"fullname": "X"}, token=token)
        assert denied.status_code == 403

        allowed = await call(f"users/{user['_id']}", "patch", {"fullname": "X"}, token=dev_token)
        assert allowed.status_code == 200
        assert allowed.result["fullname"] == "X"


# =============================================================================
# Collections service
# =============================================================================


class TestCollections:
    @pytest.mark.asyncio
    async def test_create_collection(self, call, dev_token):
        ctx = await call(
            "collections",
            "create",
            {"name": "mock-collection", "schema": {"name": {"type": "string"}}},
            token=dev_token,
        )
        assert ctx.status_code == 201
        assert ctx.result == {
            "exposed": True,
            "indexes": [],
            "name": "mock-collection",
            "schema": {"name": {"type": "string"}},
            "template": False,
        }

    @pytest.mark.asyncio
    async def test_create_twice_is_409(self, call, dev_token):
        data = {"name": "mock-collection", "schema": {"name": {"type": "string"}}}
        await call("collections", "create", data, token=dev_token)
        ctx = await call("collections", "create", data, token=dev_token)
        assert ctx.status_code == 409

    @pytest.mark.asyncio
    async def test_create_requires_dev(self, call, signup, login):
        data = {"name": "x", "schema": {}}
        assert (await call("collections", "create", data)).status_code == 401

        await signup("plain")
        token = await login("plain")
        assert (await call("collections", "create", data, token=token)).status_code == 403

    @pytest.mark.asyncio
    async def test_unresolvable_custom_code_is_400(self, call, dev_token):
        data = {
            "name": "albums",
            "schema": {"title": {"type": "string"}},
            "hooks": {"before": {"create": [{"id": "custom-code", "options": {"code": "nope:nope"}}]}},
        }
        ctx = await call("collections", "create", data, token=dev_token)
        assert ctx.status_code == 400
        assert ctx.result["details"] == {
            "hooks.before.create.0.options.code": "Cannot import 'nope': No module named 'nope'"
        }
        assert (await call("collections/albums")).status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_definition_is_400(self, call, dev_token):
        ctx = await call(
            "collections",
            "create",
            {"name": "songs", "schema": {"album": {"type": "id", "relation": "album"}}},
            token=dev_token,
        )
        assert ctx.status_code == 400
        assert "schema.album.relation" in ctx.result["details"]

    @pytest.mark.asyncio
    async def test_list_collections(self, call, dev_token, albums):
        assert (await call("collections")).status_code == 401

        ctx = await call("collections", token=dev_token)
        assert ctx.status_code == 200
        assert [c["name"] for c in ctx.result] == [
            "_migrations",
            "albums",
            "auth-credentials",
            "users",
        ]

    @pytest.mark.asyncio
    async def test_get_collection_is_public(self, call, albums):
        ctx = await call("collections/albums")
        assert ctx.status_code == 200
        assert ctx.result["name"] == "albums"

        missing = await call("collections/nope")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_patch_collection(self, call, dev_token, albums):
        patch = {
            "migrationSteps": [],
            "name": "albums",
            "schema": {"age": {"type": "number"}, "name": {"required": True, "type": "string"}},
        }
        assert (await call("collections/albums", "patch", patch)).status_code == 401

        ctx = await call("collections/albums", "patch", patch, token=dev_token)
        assert ctx.status_code == 200
        assert ctx.result == {
            "exposed": True,
            "indexes": [],
            "name": "albums",
            "schema": {"age": {"type": "number"}, "name": {"required": True, "type": "string"}},
            "template": False,
        }

    @pytest.mark.asyncio
    async def test_patch_missing_collection_is_404(self, call, dev_token):
        ctx = await call("collections/nope", "patch", {"schema": {}}, token=dev_token)
        assert ctx.status_code == 404

    @pytest.mark.asyncio
    async def test_rename_collision_is_409(self, call, dev_token, albums):
        await call("collections", "create", {"name": "songs", "schema": {}}, token=dev_token)
        ctx = await call("collections/albums", "patch", {"name": "songs"}, token=dev_token)
        assert ctx.status_code == 409

    @pytest.mark.asyncio
    async def test_rename_propagates_relations(self, call, dev_token):
        await call(
            "collections",
            "create",
            {"name": "mock-collection-control", "schema": {"name": {"type": "string"}}},
            token=dev_token,
        )
        await call(
            "collections",
            "create",
            {
                "name": "mock-collection-control-child",
                "schema": {
                    "name": {"type": "string"},
                    "parent": {"relation": "mock-collection-control", "type": "id"},
                },
            },
            token=dev_token,
        )

        ctx = await call(
            "collections/mock-collection-control",
            "patch",
            {
                "migrationSteps": [
                    {
                        "collection": "mock-collection-control",
                        "to": "mock-collection-renamed",
                        "type": "rename-collection",
                    }
                ],
                "name": "mock-collection-renamed",
            },
            token=dev_token,
        )
        assert ctx.status_code == 200
        assert ctx.result["name"] == "mock-collection-renamed"

        child = await call("collections/mock-collection-control-child")
        assert child.result["schema"]["parent"]["relation"] == "mock-collection-renamed"

    @pytest.mark.asyncio
    async def test_rename_step_cannot_move_live_records(self, call, dev_token, albums):
        await call("albums", "create", {"title": "X"})
        await call("collections", "create", {"name": "songs", "schema": {}}, token=dev_token)

        ctx = await call(
            "collections/songs",
            "patch",
            {
                "migrationSteps": [
                    {"collection": "albums", "to": "songs", "type": "rename-collection"}
                ]
            },
            token=dev_token,
        )
        assert ctx.status_code == 400
        assert ctx.result["details"] == {
            "migrationSteps.0": "collection 'albums' is still defined"
        }

        assert (await call("albums", "find")).result["total"] == 1
        assert (await call("songs", "find")).result["total"] == 0

        old = await call("collections/mock-collection-control")
        assert old.status_code == 404
        assert (await call("mock-collection-control")).status_code == 404

    @pytest.mark.asyncio
    async def test_rename_moves_records(self, call, dev_token, albums):
        created = await call("albums", "create", {"title": "X"})
        await call("collections/albums", "patch", {"name": "records"}, token=dev_token)

        ctx = await call(f"records/{created.result['_id']}")
        assert ctx.status_code == 200
        assert ctx.result["title"] == "X"

    @pytest.mark.asyncio
    async def test_remove_collection(self, call, dev_token, albums):
        assert (await call("collections/albums", "remove")).status_code == 401
        assert (await call("collections", "remove", token=dev_token)).status_code == 405

        ctx = await call("collections/albums", "remove", token=dev_token)
        assert ctx.status_code == 200
        assert (await call("albums")).status_code == 404

    @pytest.mark.asyncio
    async def test_system_collections_cannot_be_removed(self, call, dev_token):
        ctx = await call("collections/users", "remove", token=dev_token)
        assert ctx.status_code == 403

    @pytest.mark.asyncio
    async def test_collections_definition_is_not_stored(self, app):
        stored = await app.collections.store.get("collections")
        assert stored is None


# =============================================================================
# Hooks through the dispatcher
# =============================================================================


class TestDefinitionHooks:
    @pytest.mark.asyncio
    async def test_require_auth_short_circuits_before_storage(self):
        db = CountingAdapter()
        app = App(db, make_config())
        await app.initialize()

        await app.collections.create(
            {
                "name": "secrets",
                "schema": {"value": {"type": "string", "required": True}},
                "hooks": {"before": {"create": [{"id": "require-auth"}]}},
            }
        )
        db.calls.clear()

        ctx = await app.api(context(path="secrets", method="create", data={}))
        assert ctx.status_code == 401

        data_calls = [c for c in db.calls if c[1] == "secrets"]
        assert data_calls == []

    @pytest.mark.asyncio
    async def test_restrict_method(self, call, dev_token):
        await call(
            "collections",
            "create",
            {
                "name": "readonly",
                "schema": {"value": {"type": "string"}},
                "hooks": {
                    "before": {
                        "create": [{"id": "restrict-method", "options": {"allow": ["get"]}}]
                    }
                },
            },
            token=dev_token,
        )
        ctx = await call("readonly", "create", {"value": "x"})
        assert ctx.status_code == 405

    @pytest.mark.asyncio
    async def test_assign_auth_user(self, call, signup, login, dev_token):
        await call(
            "collections",
            "create",
            {
                "name": "notes",
                "schema": {
                    "text": {"type": "string"},
                    "owner": {"type": "id", "relation": "users"},
                },
                "hooks": {
                    "before": {
                        "create": [
                            {"id": "require-auth"},
                            {"id": "assign-auth-user", "options": {"field": "owner"}},
                        ]
                    }
                },
            },
            token=dev_token,
        )
        user = await signup("writer")
        token = await login("writer")

        ctx = await call("notes", "create", {"text": "hi", "owner": "someone"}, token=token)
        assert ctx.status_code == 201
        assert ctx.result["owner"] == user["_id"]

    @pytest.mark.asyncio
    async def test_unregistered_hook_is_rejected(self, call, dev_token):
        ctx = await call(
            "collections",
            "create",
            {
                "name": "x",
                "schema": {},
                "hooks": {"before": {"create": [{"id": "no-such-hook"}]}},
            },
            token=dev_token,
        )
        assert ctx.status_code == 400

    @pytest.mark.asyncio
    async def test_hooks_registry_endpoint(self, call, dev_token):
        assert (await call("_dev/hooks-registry")).status_code == 401

        ctx = await call("_dev/hooks-registry", token=dev_token)
        assert ctx.status_code == 200
        ids = {h["id"] for h in ctx.result}
        assert ids >= {
            "log-data",
            "custom-code",
            "restrict-method",
            "auth-require-password",
            "create-auth-credential",
            "require-auth",
            "assign-auth-user",
        }


# =============================================================================
# Failure handling
# =============================================================================


class TestFailures:
    @pytest.mark.asyncio
    async def test_cancelled_before_dispatch(self):
        db = CountingAdapter()
        app = App(db, make_config())
        await app.initialize()
        db.calls.clear()

        event = asyncio.Event()
        event.set()
        ctx = await app.api(context(path="users", cancel_event=event))

        assert ctx.status_code == 499
        assert db.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, app, call, albums, monkeypatch):
        async def boom(collection, query):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(app.db, "find", boom)
        ctx = await call("albums")
        assert ctx.status_code == 500
        assert ctx.result == {"error": "Internal server error", "details": None}
