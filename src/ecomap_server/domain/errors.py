"""
ecomap_server.domain.errors

Domain exception hierarchy.

Responsibilities:
- Define one base class per error kind (unauthorized, forbidden, validation, invariant,
  not found, conflict, unexpected) so callers branch on kind, not on message text.
- Define the concrete domain errors raised by the service layer and the store.

Kind -> HTTP status mapping lives in `ecomap_server.api.errors`.
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base for every error the service layer raises on purpose.

    `code` is a stable machine-readable identifier; the message is safe to show to callers.
    """

    code: str = "domain_error"
    message: str = "domain error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


# --- Kinds ------------------------------------------------------------------


class UnauthorizedError(DomainError):
    code = "unauthorized"
    message = "unauthorized"


class ForbiddenError(DomainError):
    code = "forbidden"
    message = "forbidden"


class ValidationFailedError(DomainError):
    code = "validation_failed"
    message = "validation failed"


class InvariantViolatedError(DomainError):
    code = "invariant_violated"
    message = "invariant violated"


class NotFoundError(DomainError):
    code = "not_found"
    message = "not found"


class ConflictError(DomainError):
    code = "conflict"
    message = "conflict"


class UnexpectedError(DomainError):
    """
    Wraps a storage/infrastructure failure. The message is the operation description only;
    the original exception is kept as `__cause__`.
    """

    code = "unexpected"
    message = "unexpected error"


# --- Validation ---------------------------------------------------------------


class FieldValueInvalidError(ValidationFailedError):
    code = "field_value_invalid"

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"invalid field value: {field_name}")


class FilterValueInvalidError(ValidationFailedError):
    code = "filter_value_invalid"

    def __init__(self, filter_name: str) -> None:
        self.filter_name = filter_name
        super().__init__(f"invalid filter value: {filter_name}")


# --- Authentication / authorization ---------------------------------------------


class InvalidTokenError(UnauthorizedError):
    code = "token_invalid"
    message = "invalid token"


class CredentialsIncorrectError(UnauthorizedError):
    # Raised for unknown usernames and wrong passwords alike.
    code = "credentials_incorrect"
    message = "incorrect credentials"


class RolesInvalidError(ForbiddenError):
    code = "roles_invalid"
    message = "invalid roles"


class AuthorizationInvalidError(ForbiddenError):
    code = "authorization_invalid"
    message = "invalid authorization"


# --- Users / employees ----------------------------------------------------------


class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    message = "user not found"


class UserAlreadyExistsError(ConflictError):
    code = "user_already_exists"
    message = "username already exists"


class EmployeeNotFoundError(NotFoundError):
    code = "employee_not_found"
    message = "employee not found"


class EmployeeAlreadyExistsError(ConflictError):
    code = "employee_already_exists"
    message = "username already exists"


class EmployeeAssociatedWithRouteError(ConflictError):
    code = "employee_associated_with_route"
    message = "employee associated with route"


class UserAssociatedWithContainerBookmarkError(ConflictError):
    code = "user_associated_with_container_bookmark"
    message = "user associated with container bookmark"


class UserContainerBookmarkNotFoundError(NotFoundError):
    code = "user_container_bookmark_not_found"
    message = "user container bookmark not found"


class UserContainerBookmarkAlreadyExistsError(ConflictError):
    code = "user_container_bookmark_already_exists"
    message = "user container bookmark already exists"


# --- Located entities -------------------------------------------------------------


class ContainerNotFoundError(NotFoundError):
    code = "container_not_found"
    message = "container not found"


class ContainerAssociatedWithRouteError(ConflictError):
    code = "container_associated_with_route"
    message = "container associated with route"


class ContainerAssociatedWithUserBookmarkError(ConflictError):
    code = "container_associated_with_user_bookmark"
    message = "container associated with user bookmark"


class LandfillNotFoundError(NotFoundError):
    code = "landfill_not_found"
    message = "landfill not found"


class RoadNotFoundError(NotFoundError):
    code = "road_not_found"
    message = "road not found"


class MunicipalityNotFoundError(NotFoundError):
    code = "municipality_not_found"
    message = "municipality not found"


# --- Trucks -------------------------------------------------------------------------


class TruckNotFoundError(NotFoundError):
    code = "truck_not_found"
    message = "truck not found"


class TruckAssociatedWithWarehouseError(ConflictError):
    code = "truck_associated_with_warehouse"
    message = "truck associated with warehouse"


class TruckAssociatedWithRouteError(ConflictError):
    code = "truck_associated_with_route"
    message = "truck associated with route"


# --- Warehouses -------------------------------------------------------------------


class WarehouseNotFoundError(NotFoundError):
    code = "warehouse_not_found"
    message = "warehouse not found"


class WarehouseTruckCapacityMinLimitError(InvariantViolatedError):
    code = "warehouse_truck_capacity_min_limit"
    message = "warehouse truck capacity below minimum limit"


class WarehouseTruckCapacityMaxLimitError(InvariantViolatedError):
    code = "warehouse_truck_capacity_max_limit"
    message = "warehouse truck capacity above maximum limit"


class WarehouseAssociatedWithTruckError(ConflictError):
    code = "warehouse_associated_with_truck"
    message = "warehouse associated with truck"


class WarehouseAssociatedWithRouteDepartureError(ConflictError):
    code = "warehouse_associated_with_route_departure"
    message = "warehouse associated with route as departure"


class WarehouseAssociatedWithRouteArrivalError(ConflictError):
    code = "warehouse_associated_with_route_arrival"
    message = "warehouse associated with route as arrival"


class WarehouseTruckNotFoundError(NotFoundError):
    code = "warehouse_truck_not_found"
    message = "warehouse truck not found"


class WarehouseTruckAlreadyExistsError(ConflictError):
    code = "warehouse_truck_already_exists"
    message = "warehouse truck already exists"


class WarehouseTruckAssociatedWithRouteDepartureError(ConflictError):
    code = "warehouse_truck_associated_with_route_departure"
    message = "warehouse truck associated with route as departure"


class WarehouseTruckAssociatedWithRouteArrivalError(ConflictError):
    code = "warehouse_truck_associated_with_route_arrival"
    message = "warehouse truck associated with route as arrival"


# --- Routes -----------------------------------------------------------------------


class RouteNotFoundError(NotFoundError):
    code = "route_not_found"
    message = "route not found"


class RouteDepartureWarehouseNotFoundError(NotFoundError):
    code = "route_departure_warehouse_not_found"
    message = "route departure warehouse not found"


class RouteArrivalWarehouseNotFoundError(NotFoundError):
    code = "route_arrival_warehouse_not_found"
    message = "route arrival warehouse not found"


class RouteTruckPersonCapacityMinLimitError(InvariantViolatedError):
    code = "route_truck_person_capacity_min_limit"
    message = "route truck person capacity below minimum limit"


class RouteTruckPersonCapacityMaxLimitError(InvariantViolatedError):
    code = "route_truck_person_capacity_max_limit"
    message = "route truck person capacity above maximum limit"


class RouteAssociatedWithEmployeeError(ConflictError):
    code = "route_associated_with_employee"
    message = "route associated with employee"


class RouteEmployeeNotFoundError(NotFoundError):
    code = "route_employee_not_found"
    message = "route employee not found"


class RouteEmployeeAlreadyExistsError(ConflictError):
    code = "route_employee_already_exists"
    message = "route employee already exists"


class RouteAssociatedWithContainerError(ConflictError):
    code = "route_associated_with_container"
    message = "route associated with container"


class RouteContainerNotFoundError(NotFoundError):
    code = "route_container_not_found"
    message = "route container not found"


class RouteContainerAlreadyExistsError(ConflictError):
    code = "route_container_already_exists"
    message = "route container already exists"


# --- Module Notes -----------------------------------------------------------
# Store implementations raise the not-found/conflict classes directly so the service layer
# never inspects driver exceptions.
