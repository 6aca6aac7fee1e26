"""
Data service registration, lifetimes and interception.

The registry hands out data services bound to a Unit of Work. Generic
services are built on demand per model; concrete subclasses are discovered
in modules and resolved by class.

Usage:
    config = (
        DataServicesConfiguration(data_service_lifetime=ServiceLifetime.SCOPED)
        .add_interceptor(LoggingInterceptor(), InterceptorTarget.CRUD)
        .add_response_paginator()
    )
    registry = DataServiceRegistry(config)
    registry.register_data_services("app.services")

    async with UnitOfWork() as uow:
        widgets = registry.get_crud_service(Widget, uow)
        reports = registry.resolve(WidgetReportService, uow)

Class decorators:
    @skip_registration           # never discovered
    @lifetime(ServiceLifetime.TRANSIENT)
    @intercepted_by(AuditInterceptor)
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
from dataclasses import dataclass, field
from functools import wraps
from types import ModuleType
from typing import Any, Callable, TypeVar

from dataservices.mapping import Mapper
from dataservices.pagination import BaseUriService, ResponsePaginator, UriService
from dataservices.results import Result
from dataservices.services import CrudDataService, DataServiceBase, ReadOnlyDataService
from dataservices.unit_of_work import UnitOfWork
from shared.config.constants import InterceptorTarget, ServiceLifetime
from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

ServiceT = TypeVar("ServiceT", bound=type)

_SKIP_ATTR = "__dataservice_skip__"
_LIFETIME_ATTR = "__dataservice_lifetime__"
_INTERCEPTORS_ATTR = "__dataservice_interceptors__"

# Generic bases are never registered as concrete services
_GENERIC_SERVICES = (DataServiceBase, ReadOnlyDataService, CrudDataService)


# =============================================================================
# Interception
# =============================================================================


@dataclass
class Invocation:
    """One call of a public data service method."""

    service: Any
    method: str
    args: tuple
    kwargs: dict


class Interceptor:
    """
    Hooks around public data service calls.

    Override any of the hooks; the defaults do nothing. Hooks run for both
    synchronous and coroutine methods.
    """

    def before(self, invocation: Invocation) -> None:
        pass

    def after(self, invocation: Invocation, result: Any) -> None:
        pass

    def on_error(self, invocation: Invocation, exc: BaseException) -> None:
        pass


class LoggingInterceptor(Interceptor):
    """Logs failed results and escaping exceptions."""

    def after(self, invocation: Invocation, result: Any) -> None:
        if isinstance(result, Result) and result.is_failure:
            logger.warning(
                "Data service call failed",
                service=type(invocation.service).__name__,
                method=invocation.method,
                error=str(result.error),
            )

    def on_error(self, invocation: Invocation, exc: BaseException) -> None:
        logger.warning(
            "Data service call raised",
            service=type(invocation.service).__name__,
            method=invocation.method,
            error_type=type(exc).__name__,
        )


class InterceptedService:
    """
    Proxy running interceptors around the public methods of a service.

    Attributes and private methods are passed through untouched.
    """

    def __init__(self, target: Any, interceptors: list[Interceptor]):
        self._target = target
        self._interceptors = list(interceptors)

    @property
    def target(self) -> Any:
        """The proxied service."""
        return self._target

    @property
    def interceptors(self) -> list[Interceptor]:
        return list(self._interceptors)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if name.startswith("_") or not callable(attr) or not self._interceptors:
            return attr
        return self._wrap(name, attr)

    def _wrap(self, name: str, method: Callable) -> Callable:
        interceptors = self._interceptors
        target = self._target

        @wraps(method)
        async def async_wrapper(*args, **kwargs):
            invocation = Invocation(target, name, args, kwargs)
            for interceptor in interceptors:
                interceptor.before(invocation)
            try:
                result = await method(*args, **kwargs)
            except (Exception, asyncio.CancelledError) as exc:
                for interceptor in reversed(interceptors):
                    interceptor.on_error(invocation, exc)
                raise
            for interceptor in reversed(interceptors):
                interceptor.after(invocation, result)
            return result

        @wraps(method)
        def sync_wrapper(*args, **kwargs):
            invocation = Invocation(target, name, args, kwargs)
            for interceptor in interceptors:
                interceptor.before(invocation)
            try:
                result = method(*args, **kwargs)
            except Exception as exc:
                for interceptor in reversed(interceptors):
                    interceptor.on_error(invocation, exc)
                raise
            for interceptor in reversed(interceptors):
                interceptor.after(invocation, result)
            return result

        # Return appropriate wrapper based on method type
        if inspect.iscoroutinefunction(method):
            return async_wrapper
        return sync_wrapper

    def __repr__(self) -> str:
        return f"<InterceptedService({self._target!r}, interceptors={len(self._interceptors)})>"


def _instantiate(interceptor: Interceptor | type[Interceptor]) -> Interceptor:
    return interceptor() if isinstance(interceptor, type) else interceptor


# =============================================================================
# Class decorators
# =============================================================================


def skip_registration(cls: ServiceT) -> ServiceT:
    """Exclude a data service class from module discovery (not inherited)."""
    setattr(cls, _SKIP_ATTR, cls)
    return cls


def lifetime(value: ServiceLifetime) -> Callable[[ServiceT], ServiceT]:
    """Override the configured lifetime for one data service class."""

    def decorator(cls: ServiceT) -> ServiceT:
        setattr(cls, _LIFETIME_ATTR, ServiceLifetime(value))
        return cls

    return decorator


def intercepted_by(*interceptors: Interceptor | type[Interceptor]) -> Callable[[ServiceT], ServiceT]:
    """Attach interceptors to one data service class."""

    def decorator(cls: ServiceT) -> ServiceT:
        existing = list(cls.__dict__.get(_INTERCEPTORS_ATTR, ()))
        setattr(cls, _INTERCEPTORS_ATTR, existing + [_instantiate(i) for i in interceptors])
        return cls

    return decorator


def is_skipped(cls: type) -> bool:
    # Compared by identity so subclasses of a skipped class are still discovered
    return getattr(cls, _SKIP_ATTR, None) is cls


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class DataServicesConfiguration:
    """
    Options for ``DataServiceRegistry``.

    Attributes:
        base_service_lifetime: Lifetime of the generic Read-only/CRUD services
        data_service_lifetime: Default lifetime of discovered concrete services
        interceptors: (interceptor, target) pairs applied to generic services
        mapper: Mapper handed to every service
        uri_service: Set by ``add_response_paginator``
    """

    base_service_lifetime: ServiceLifetime = field(
        default_factory=lambda: ServiceLifetime(settings.default_service_lifetime)
    )
    data_service_lifetime: ServiceLifetime = field(
        default_factory=lambda: ServiceLifetime(settings.default_service_lifetime)
    )
    interceptors: list[tuple[Interceptor, InterceptorTarget]] = field(default_factory=list)
    mapper: Mapper = field(default_factory=Mapper)
    uri_service: UriService | None = None

    def add_interceptor(
        self,
        interceptor: Interceptor | type[Interceptor],
        target: InterceptorTarget = InterceptorTarget.CRUD_AND_READ_ONLY,
    ) -> "DataServicesConfiguration":
        """Intercept generic services of the given kind; returns self for chaining."""
        self.interceptors.append((_instantiate(interceptor), InterceptorTarget(target)))
        return self

    def add_response_paginator(self, uri_service: UriService | None = None) -> "DataServicesConfiguration":
        """Enable ``get_paginator``; links default to ``settings.base_url``."""
        self.uri_service = uri_service or BaseUriService(settings.base_url)
        return self

    def interceptors_for(self, target: InterceptorTarget) -> list[Interceptor]:
        """Interceptors that apply to a generic service of kind ``target``."""
        return [
            interceptor
            for interceptor, configured in self.interceptors
            if configured in (target, InterceptorTarget.CRUD_AND_READ_ONLY)
        ]


# =============================================================================
# Registry
# =============================================================================


@dataclass
class ServiceRegistration:
    """How one concrete data service class is built."""

    service_cls: type
    lifetime: ServiceLifetime
    interceptors: list[Interceptor] = field(default_factory=list)


def _warn_singleton(service: str) -> None:
    logger.warning(
        "Singleton data service stays bound to the first Unit of Work it is "
        "resolved with and fails once that Unit of Work is closed",
        service=service,
    )


class DataServiceRegistry:
    """
    Builds data services bound to a Unit of Work and caches them by lifetime.

    Lifetimes:
    - SINGLETON: one instance for the registry, bound to the first Unit of
      Work it was resolved with
    - SCOPED: one instance per Unit of Work, held by it and dropped on close
    - TRANSIENT: a new instance on every resolution
    """

    def __init__(self, config: DataServicesConfiguration | None = None):
        self.config = config or DataServicesConfiguration()
        self._registrations: dict[type, ServiceRegistration] = {}
        self._singletons: dict[Any, Any] = {}
        self._paginator: ResponsePaginator | None = None
        if self.config.base_service_lifetime is ServiceLifetime.SINGLETON:
            _warn_singleton("generic data services")

    @property
    def mapper(self) -> Mapper:
        return self.config.mapper

    @property
    def registrations(self) -> dict[type, ServiceRegistration]:
        return dict(self._registrations)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, service_cls: type, *, lifetime: ServiceLifetime | None = None) -> ServiceRegistration:
        """Register one concrete data service class."""
        if not (isinstance(service_cls, type) and issubclass(service_cls, DataServiceBase)):
            raise TypeError(f"{service_cls!r} is not a data service class")
        if service_cls.model is None:
            raise TypeError(f"{service_cls.__name__} must set a model to be registered")

        resolved_lifetime = (
            lifetime
            or service_cls.__dict__.get(_LIFETIME_ATTR)
            or self.config.data_service_lifetime
        )
        registration = ServiceRegistration(
            service_cls=service_cls,
            lifetime=ServiceLifetime(resolved_lifetime),
            interceptors=list(service_cls.__dict__.get(_INTERCEPTORS_ATTR, ())),
        )
        self._registrations[service_cls] = registration
        if registration.lifetime is ServiceLifetime.SINGLETON:
            _warn_singleton(service_cls.__name__)
        logger.debug(
            "Data service registered",
            service=service_cls.__name__,
            lifetime=registration.lifetime.value,
            interceptors=len(registration.interceptors),
        )
        return registration

    def register_data_services(self, *modules: ModuleType | str) -> list[type]:
        """
        Discover and register the concrete data services defined in modules.

        Classes imported into a module from elsewhere, abstract classes, the
        generic bases and ``@skip_registration`` classes are ignored.
        """
        registered: list[type] = []
        for module in modules:
            if isinstance(module, str):
                module = importlib.import_module(module)
            for candidate in vars(module).values():
                if not self._is_discoverable(candidate, module.__name__):
                    continue
                self.register(candidate)
                registered.append(candidate)

        logger.info("Data services registered", count=len(registered))
        return registered

    @staticmethod
    def _is_discoverable(candidate: Any, module_name: str) -> bool:
        return (
            isinstance(candidate, type)
            and issubclass(candidate, DataServiceBase)
            and candidate not in _GENERIC_SERVICES
            and candidate.__module__ == module_name
            and not inspect.isabstract(candidate)
            and not is_skipped(candidate)
            and candidate.model is not None
        )

    # =========================================================================
    # Resolution
    # =========================================================================

    def _instance(
        self,
        key: Any,
        factory: Callable[[], Any],
        service_lifetime: ServiceLifetime,
        unit_of_work: UnitOfWork,
    ) -> Any:
        if service_lifetime is ServiceLifetime.TRANSIENT:
            return factory()

        if service_lifetime is ServiceLifetime.SINGLETON:
            cache = self._singletons
        else:
            cache = unit_of_work.scoped_services.setdefault(self, {})

        service = cache.get(key)
        if service is None:
            service = cache[key] = factory()
        return service

    @staticmethod
    def _intercept(service: Any, interceptors: list[Interceptor]) -> Any:
        if not interceptors:
            return service
        return InterceptedService(service, interceptors)

    def get_read_only_service(self, model: type, unit_of_work: UnitOfWork, id_type: type = int) -> Any:
        """Generic read-only data service for ``model``."""
        interceptors = self.config.interceptors_for(InterceptorTarget.READ_ONLY)
        return self._instance(
            (InterceptorTarget.READ_ONLY, model, id_type),
            lambda: self._intercept(
                ReadOnlyDataService(unit_of_work, self.mapper, model, id_type), interceptors
            ),
            self.config.base_service_lifetime,
            unit_of_work,
        )

    def get_crud_service(self, model: type, unit_of_work: UnitOfWork, id_type: type = int) -> Any:
        """Generic CRUD data service for ``model``."""
        interceptors = self.config.interceptors_for(InterceptorTarget.CRUD)
        return self._instance(
            (InterceptorTarget.CRUD, model, id_type),
            lambda: self._intercept(
                CrudDataService(unit_of_work, self.mapper, model, id_type), interceptors
            ),
            self.config.base_service_lifetime,
            unit_of_work,
        )

    def resolve(self, service_cls: type, unit_of_work: UnitOfWork) -> Any:
        """
        Registered concrete data service bound to ``unit_of_work``.

        Raises:
            LookupError: If the class was never registered.
        """
        registration = self._registrations.get(service_cls)
        if registration is None:
            raise LookupError(f"{service_cls.__name__} is not a registered data service")
        return self._instance(
            service_cls,
            lambda: self._intercept(
                service_cls(unit_of_work, self.mapper), registration.interceptors
            ),
            registration.lifetime,
            unit_of_work,
        )

    def get_paginator(self) -> ResponsePaginator:
        """
        Shared response paginator.

        Raises:
            LookupError: If ``add_response_paginator`` was not configured.
        """
        if self.config.uri_service is None:
            raise LookupError("Response paginator not configured; call add_response_paginator()")
        if self._paginator is None:
            self._paginator = ResponsePaginator(self.config.uri_service)
        return self._paginator
