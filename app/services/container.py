# app/services/container.py
from dataclasses import dataclass

from app.core.utils import Clock, utc_now
from app.services.catalog import CatalogCache, CatalogStore
from app.services.lending import LendingWorkflow
from app.services.membership import MembershipStore
from app.services.notifications import NotificationSink
from app.services.reservations import ReservationQueue


@dataclass
class LibraryServices:
    catalog: CatalogStore
    members: MembershipStore
    reservations: ReservationQueue
    notifications: NotificationSink
    lending: LendingWorkflow


def build_services(clock: Clock = utc_now, use_cache: bool = True) -> LibraryServices:
    """Wire one set of services sharing a clock (and, optionally, a catalogue cache)."""
    catalog = CatalogStore(cache=CatalogCache() if use_cache else None, clock=clock)
    members = MembershipStore(clock=clock)
    reservations = ReservationQueue(clock=clock)
    notifications = NotificationSink(clock=clock)
    lending = LendingWorkflow(catalog, members, reservations, notifications, clock=clock)
    return LibraryServices(
        catalog=catalog,
        members=members,
        reservations=reservations,
        notifications=notifications,
        lending=lending,
    )
