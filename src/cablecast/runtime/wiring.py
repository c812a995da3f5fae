"""
Runtime wiring.

Builds the object graph shared by the HTTP server and the CLI from
Settings: library catalog, selector, schedule builder, timeline store,
channel service and horizon manager.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..infra.exceptions import CollaboratorUnavailableError
from ..infra.logging import get_logger
from ..infra.repository import ChannelRepository, JsonChannelRepository
from ..infra.settings import Settings
from ..infra.settings import settings as default_settings
from .channel_service import ChannelService
from .clock import MasterClock
from .content_selector import ContentSelector, RandomSource
from .horizon_manager import HorizonManager
from .library import (
    CatalogInterstitialSource,
    StaticLibraryCatalog,
    YamlLibraryCatalog,
)
from .schedule_builder import ScheduleBuilder, SchedulerConfig
from .timeline_store import TimelineStore

logger = get_logger(__name__)


@dataclass
class Runtime:
    """The wired collaborators of one CableCast process."""

    config: SchedulerConfig
    catalog: StaticLibraryCatalog
    builder: ScheduleBuilder
    store: TimelineStore
    service: ChannelService
    horizon_manager: HorizonManager


def load_catalog(catalog_path: str | None) -> StaticLibraryCatalog:
    """Load the YAML library catalog, or an empty one when unset or unreadable."""
    if not catalog_path:
        logger.warning("library_catalog_not_configured")
        return StaticLibraryCatalog()
    try:
        return YamlLibraryCatalog(catalog_path)
    except CollaboratorUnavailableError as e:
        logger.error("library_catalog_unavailable", path=catalog_path, error=str(e))
        return StaticLibraryCatalog()


def build_runtime(
    settings: Settings | None = None,
    *,
    catalog: StaticLibraryCatalog | None = None,
    repository: ChannelRepository | None = None,
    master_clock=None,
    random_source: RandomSource | None = None,
    load: bool = True,
) -> Runtime:
    """Wire a Runtime from settings; any collaborator may be supplied directly."""
    settings = settings or default_settings
    config = SchedulerConfig.from_settings(settings)
    clock = master_clock or MasterClock()
    if catalog is None:
        catalog = load_catalog(settings.library_catalog)
    if repository is None:
        repository = JsonChannelRepository(settings.channels_file)

    selector = ContentSelector(random_source)
    builder = ScheduleBuilder(
        catalog,
        selector,
        config=config,
        interstitials=CatalogInterstitialSource(catalog, selector),
    )
    store = TimelineStore()
    service = ChannelService(repository, builder, store, master_clock=clock)
    if load:
        service.load()

    horizon_manager = HorizonManager(
        channels=service,
        builder=builder,
        store=store,
        master_clock=clock,
        config=config,
        evaluation_interval_seconds=settings.maintenance_interval_seconds,
        on_committed=service.on_committed,
    )
    return Runtime(
        config=config,
        catalog=catalog,
        builder=builder,
        store=store,
        service=service,
        horizon_manager=horizon_manager,
    )
