from dependency_injector import containers, providers

from tradapi.config import get_settings
from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.database.connection import Database
from tradapi.services.discovery_service import DiscoveryService
from tradapi.services.entity_lookup_service import EntityLookupService
from tradapi.services.points_ledger_service import PointsLedgerService
from tradapi.services.shortlink_service import ShortlinkService


class CoreModule(containers.DeclarativeContainer):
    """Process-wide resources, created once and shared by every request."""

    config = providers.Singleton(get_settings)
    database = providers.Singleton(Database.from_settings, settings=config)
    dispatcher = providers.Singleton(
        BackgroundDispatcher,
        max_workers=config.provided.BACKGROUND_MAX_WORKERS,
        max_pending=config.provided.BACKGROUND_MAX_PENDING,
    )


class ServiceModule(containers.DeclarativeContainer):
    """Services that open their own sessions from the shared Database."""

    core = providers.DependenciesContainer()

    points_ledger_service = providers.Factory(
        PointsLedgerService, database=core.database, dispatcher=core.dispatcher
    )
    discovery_service = providers.Factory(
        DiscoveryService, database=core.database, settings=core.config
    )
    entity_lookup_service = providers.Factory(
        EntityLookupService,
        database=core.database,
        discovery=discovery_service,
        settings=core.config,
    )
    shortlink_service = providers.Factory(
        ShortlinkService,
        database=core.database,
        dispatcher=core.dispatcher,
        settings=core.config,
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "tradapi.deps",
            "tradapi.core.auth",
            "tradapi.routers.health_router",
            "tradapi.routers.points_router",
            "tradapi.routers.review_router",
            "tradapi.routers.discovery_router",
            "tradapi.routers.shortlink_router",
            "tradapi.routers.admin_router",
        ],
    )

    core = providers.Container(CoreModule)
    services = providers.Container(ServiceModule, core=core)
