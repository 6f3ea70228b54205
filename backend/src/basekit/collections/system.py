"""Definitions every basekit instance is seeded with."""

from basekit.schema.types import CollectionDefinition, FieldSpec, IndexSpec

COLLECTIONS = "collections"
USERS = "users"
AUTH_CREDENTIALS = "auth-credentials"
MIGRATIONS = "_migrations"

DEV_ROLE = "dev"


def collections_definition() -> CollectionDefinition:
    """The self-hosting definition routed to the registry itself.

    Seeded in process during bootstrap and never written to the store.
    """
    return CollectionDefinition(
        name=COLLECTIONS,
        schema={
            "name": FieldSpec(type="string", required=True),
            "schema": FieldSpec(type="object", required=True),
            "indexes": FieldSpec(type="array"),
            "exposed": FieldSpec(type="boolean", default_value=True),
            "template": FieldSpec(type="boolean", default_value=False),
            "hooks": FieldSpec(type="object"),
        },
    )


def users_definition() -> CollectionDefinition:
    return CollectionDefinition(
        name=USERS,
        schema={
            "username": FieldSpec(type="string", required=True),
            "email": FieldSpec(type="string", required=True),
            "fullname": FieldSpec(type="string"),
            "role": FieldSpec(type="string", default_value="basic"),
        },
        indexes=[IndexSpec(fields=["username"], unique=True)],
    )


def auth_credentials_definition() -> CollectionDefinition:
    return CollectionDefinition(
        name=AUTH_CREDENTIALS,
        schema={
            "user": FieldSpec(type="id", required=True, relation=USERS),
            "password": FieldSpec(type="string", required=True),
        },
        indexes=[IndexSpec(fields=["user"], unique=True)],
        exposed=False,
    )


def migrations_definition() -> CollectionDefinition:
    return CollectionDefinition(
        name=MIGRATIONS,
        schema={
            "collection": FieldSpec(type="string", required=True),
            "steps": FieldSpec(type="array", required=True),
            "status": FieldSpec(type="string", required=True),
            "failedStep": FieldSpec(type="number"),
            "error": FieldSpec(type="string"),
        },
        exposed=False,
    )


def stored_system_definitions() -> list[CollectionDefinition]:
    """System definitions that live in the store alongside user collections."""
    return [
        migrations_definition(),
        auth_credentials_definition(),
        users_definition(),
    ]


SYSTEM_COLLECTIONS = frozenset({COLLECTIONS, USERS, AUTH_CREDENTIALS, MIGRATIONS})

# Internal routes served outside generic collection dispatch.
LOGIN = "login"
DEV_SETUP = "_dev/dev-setup"
HOOKS_REGISTRY = "_dev/hooks-registry"
