"""
Generic data services over SQLAlchemy's async ORM.

STRUCTURE:
- results.py: Result type and wrap/wrap_async
- models/: Declarative Base, AuditMixin (soft delete + audit columns)
- mapping.py: Mapper between entities and pydantic DTOs
- repositories/: Specifications, ReadOnlyRepository/Repository, RepositoryRegistry
- unit_of_work.py: UnitOfWork owning one AsyncSession
- services/: DataServiceBase, ReadOnlyDataService, CrudDataService
- pagination/: PaginationFilter, PagedResponse, ResponsePaginator
- registration.py: DataServiceRegistry, lifetimes, interceptors
- dependencies.py: FastAPI dependencies (imported explicitly)

IMPORT EXAMPLES:
    from dataservices import CrudDataService, UnitOfWork, Mapper
    from dataservices.dependencies import data_service_dependency
"""

from dataservices.results import (
    Result,
    ResultError,
    NotFoundError,
    ArgumentNullError,
    ExceptionError,
    wrap,
    wrap_async,
)
from dataservices.models import Base, AuditMixin
from dataservices.mapping import Mapper
from dataservices.repositories import (
    Specification,
    ActiveSpecification,
    ProjectedSpecification,
    ReadOnlyRepository,
    Repository,
    RepositoryRegistry,
)
from dataservices.unit_of_work import UnitOfWork
from dataservices.services import DataServiceBase, ReadOnlyDataService, CrudDataService
from dataservices.pagination import (
    PaginationFilter,
    PagedResponse,
    UriService,
    BaseUriService,
    ResponsePaginator,
)
from dataservices.registration import (
    DataServicesConfiguration,
    DataServiceRegistry,
    Interceptor,
    LoggingInterceptor,
    intercepted_by,
    lifetime,
    skip_registration,
)

__all__ = [
    # results
    "Result",
    "ResultError",
    "NotFoundError",
    "ArgumentNullError",
    "ExceptionError",
    "wrap",
    "wrap_async",
    # models
    "Base",
    "AuditMixin",
    # mapping
    "Mapper",
    # repositories
    "Specification",
    "ActiveSpecification",
    "ProjectedSpecification",
    "ReadOnlyRepository",
    "Repository",
    "RepositoryRegistry",
    # unit of work
    "UnitOfWork",
    # services
    "DataServiceBase",
    "ReadOnlyDataService",
    "CrudDataService",
    # pagination
    "PaginationFilter",
    "PagedResponse",
    "UriService",
    "BaseUriService",
    "ResponsePaginator",
    # registration
    "DataServicesConfiguration",
    "DataServiceRegistry",
    "Interceptor",
    "LoggingInterceptor",
    "intercepted_by",
    "lifetime",
    "skip_registration",
]
