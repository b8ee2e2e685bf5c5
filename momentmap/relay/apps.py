import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class RelayConfig(AppConfig):
    name = "momentmap.relay"
    label = "relay"

    def ready(self):
        """Create the process-wide relay state at startup."""
        from .config import config
        from .runtime import get_relay

        get_relay()
        logger.info(
            "Relay ready (sweep every %ss, room history %d, idle room grace %s)",
            config.RELAY_SWEEP_INTERVAL_SECONDS,
            config.RELAY_ROOM_HISTORY_LIMIT,
            config.RELAY_ROOM_IDLE_GRACE_SECONDS,
        )
