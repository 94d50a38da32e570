"""Transport route controller: the operator-highlighted switch -> consumer path."""

import logging
import threading
from typing import Optional

from floor_twin.bus import NotificationBus
from floor_twin.errors import NotFoundError, RouteError
from floor_twin.models import StationKind, TransportRoute
from floor_twin.registry import StationRegistry

logger = logging.getLogger(__name__)


class RouteController:
    """Holds the single current route and announces every replacement.

    The route is independent of component movement; it only has to name a
    switch and one of that switch's consumers.
    """

    def __init__(
        self,
        registry: StationRegistry,
        bus: NotificationBus[TransportRoute],
        lock: Optional[threading.RLock] = None,
    ):
        self.registry = registry
        self.bus = bus
        self._lock = lock or threading.RLock()
        self._route = TransportRoute.inactive()

    @property
    def route(self) -> TransportRoute:
        with self._lock:
            return self._route

    def set_route(self, switch_id: str, consumer_id: str) -> TransportRoute:
        """Replace the active route.

        Raises:
            NotFoundError: If the switch or consumer is unknown
            RouteError: If the consumer is not bound to the switch
        """
        with self._lock:
            if self.registry.kind_of(switch_id) != StationKind.SWITCH:
                raise NotFoundError(StationKind.SWITCH.value, switch_id)
            if self.registry.kind_of(consumer_id) != StationKind.CONSUMER:
                raise NotFoundError(StationKind.CONSUMER.value, consumer_id)
            bound_to = self.registry.get(consumer_id).switch_id
            if bound_to != switch_id:
                raise RouteError(
                    f"Consumer {consumer_id} is bound to {bound_to}, not {switch_id}"
                )

            route = TransportRoute(
                target_switch_id=switch_id,
                target_consumer_id=consumer_id,
                is_active=True,
            )
            return self._replace(route)

    def clear_route(self) -> TransportRoute:
        """Replace the route with the inactive, empty route."""
        with self._lock:
            return self._replace(TransportRoute.inactive())

    def _replace(self, route: TransportRoute) -> TransportRoute:
        self._route = route
        if route.is_active:
            logger.info(
                "Transport route set: %s -> %s",
                route.target_switch_id,
                route.target_consumer_id,
            )
        else:
            logger.info("Transport route cleared")
        self.bus.publish(route)
        return route
