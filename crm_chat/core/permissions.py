"""Roles and the permissions each role grants."""


class Role:
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"


ROLES = (Role.ADMIN, Role.MANAGER, Role.AGENT)


class Permission:
    CREATE_USER = "create_user"
    READ_USER = "read_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    CREATE_CUSTOMER = "create_customer"
    READ_CUSTOMER = "read_customer"
    UPDATE_CUSTOMER = "update_customer"
    DELETE_CUSTOMER = "delete_customer"
    CREATE_CAMPAIGN = "create_campaign"
    READ_CAMPAIGN = "read_campaign"
    UPDATE_CAMPAIGN = "update_campaign"
    DELETE_CAMPAIGN = "delete_campaign"
    ASSIGN_CUSTOMER = "assign_customer"


ALL_PERMISSIONS = frozenset(
    value for name, value in vars(Permission).items() if not name.startswith("_")
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    Role.ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: frozenset({
        Permission.READ_USER,
        Permission.CREATE_CUSTOMER,
        Permission.READ_CUSTOMER,
        Permission.UPDATE_CUSTOMER,
        Permission.CREATE_CAMPAIGN,
        Permission.READ_CAMPAIGN,
        Permission.UPDATE_CAMPAIGN,
        Permission.ASSIGN_CUSTOMER,
    }),
    Role.AGENT: frozenset({
        Permission.READ_CUSTOMER,
        Permission.UPDATE_CUSTOMER,
        Permission.READ_CAMPAIGN,
    }),
}


def has_permissions(role: str, required: list[str]) -> bool:
    granted = ROLE_PERMISSIONS.get(role, frozenset())
    return all(permission in granted for permission in required)
