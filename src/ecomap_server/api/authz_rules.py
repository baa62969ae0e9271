"""
ecomap_server.api.authz_rules

Role requirements of every HTTP route.

Responsibilities:
- Declare, per route template and verb, which subject roles may call it (empty: public).
- Declare the ownership path parameters and the admin role.

Every route registered on the app must appear here; unlisted routes are refused.
"""

from __future__ import annotations

from ecomap_server.auth.authz import AuthorizationRules, RoleMap
from ecomap_server.auth.models import SubjectRole

PUBLIC: frozenset[str] = frozenset()
USER = frozenset({SubjectRole.user.value})
MANAGER = frozenset({SubjectRole.manager.value})
STAFF = frozenset({SubjectRole.waste_operator.value, SubjectRole.manager.value})
ANYONE_SIGNED_IN = USER | STAFF

OWNERSHIP_PARAMS = ("employee_id", "user_id")

ROLE_MAP: RoleMap = {
    # Operations
    "/healthz": {"GET": PUBLIC},
    "/readyz": {"GET": PUBLIC},
    "/docs": {"GET": PUBLIC},
    "/docs/oauth2-redirect": {"GET": PUBLIC},
    "/openapi.json": {"GET": PUBLIC},
    # Users
    "/api/users": {"POST": PUBLIC, "GET": MANAGER},
    "/api/users/signin": {"POST": PUBLIC},
    "/api/users/password": {"PUT": PUBLIC},
    "/api/users/reset-password": {"PUT": MANAGER},
    "/api/users/{user_id}": {
        "GET": USER | MANAGER,
        "PATCH": USER | MANAGER,
        "DELETE": USER | MANAGER,
    },
    "/api/users/{user_id}/bookmarks": {"GET": USER | MANAGER},
    "/api/users/{user_id}/bookmarks/{container_id}": {
        "POST": USER | MANAGER,
        "DELETE": USER | MANAGER,
    },
    # Employees
    "/api/employees": {"POST": MANAGER, "GET": MANAGER},
    "/api/employees/signin": {"POST": PUBLIC},
    "/api/employees/password": {"PUT": PUBLIC},
    "/api/employees/reset-password": {"PUT": MANAGER},
    "/api/employees/{employee_id}": {"GET": STAFF, "PATCH": MANAGER, "DELETE": MANAGER},
    # Containers and landfills
    "/api/containers": {"POST": MANAGER, "GET": ANYONE_SIGNED_IN},
    "/api/containers/{container_id}": {
        "GET": ANYONE_SIGNED_IN,
        "PATCH": MANAGER,
        "DELETE": MANAGER,
    },
    "/api/landfills": {"POST": MANAGER, "GET": STAFF},
    "/api/landfills/{landfill_id}": {"GET": STAFF, "PATCH": MANAGER, "DELETE": MANAGER},
    # Trucks and warehouses
    "/api/trucks": {"POST": MANAGER, "GET": STAFF},
    "/api/trucks/{truck_id}": {"GET": STAFF, "PATCH": MANAGER, "DELETE": MANAGER},
    "/api/warehouses": {"POST": MANAGER, "GET": STAFF},
    "/api/warehouses/{warehouse_id}": {"GET": STAFF, "PATCH": MANAGER, "DELETE": MANAGER},
    "/api/warehouses/{warehouse_id}/trucks": {"GET": STAFF},
    "/api/warehouses/{warehouse_id}/trucks/{truck_id}": {"POST": MANAGER, "DELETE": MANAGER},
    # Routes
    "/api/routes": {"POST": MANAGER, "GET": STAFF},
    "/api/routes/{route_id}": {"GET": STAFF, "PATCH": MANAGER, "DELETE": MANAGER},
    "/api/routes/{route_id}/employees": {"GET": STAFF},
    "/api/routes/{route_id}/employees/{employee_id}": {"POST": MANAGER, "DELETE": MANAGER},
    "/api/routes/{route_id}/containers": {"GET": STAFF},
    "/api/routes/{route_id}/containers/{container_id}": {"POST": MANAGER, "DELETE": MANAGER},
}


def build_rules() -> AuthorizationRules:
    return AuthorizationRules(
        role_map=ROLE_MAP,
        ownership_params=OWNERSHIP_PARAMS,
        admin_role=SubjectRole.manager.value,
    )


# --- Module Notes -----------------------------------------------------------
# A waste operator reading `/api/employees/{employee_id}` only gets their own record: the
# ownership check compares the path id with the token subject (the employee id). Users
# reach their own profile and bookmarks the same way, through `user_id`.
