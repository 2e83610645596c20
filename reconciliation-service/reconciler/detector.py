import logging
from typing import Optional
from reconciler.config import DetectorConfig, DIAGNOSTIC_SENDERS
from reconciler.models import Provider
from reconciler.parsers import parse_message

logger = logging.getLogger(__name__)

DETECTION_ORDER = (Provider.BKASH, Provider.NAGAD, Provider.ROCKET, Provider.BANK)
# Bank text is too generic to be recognised from content alone.
CONTENT_FALLBACK_ORDER = (Provider.BKASH, Provider.NAGAD, Provider.ROCKET)


class ProviderDetector:
    """
    Maps a sender identifier to a provider using the configured whitelist.

    Unknown senders are rejected by returning None. Content sniffing for
    blank or diagnostic senders only happens when the config enables it.
    """

    def __init__(self, config: DetectorConfig):
        self.config = config

    def detect_sender(self, sender: str) -> Optional[Provider]:
        sender = (sender or "").strip().lower()
        if not sender:
            return None
        for provider in DETECTION_ORDER:
            if self.config.whitelist.matches(provider, sender):
                return provider
        return None

    def detect_content(self, raw_message: str) -> Optional[Provider]:
        for provider in CONTENT_FALLBACK_ORDER:
            if parse_message(provider, raw_message).transaction_id:
                return provider
        return None

    def detect(self, sender: str, raw_message: str) -> Optional[Provider]:
        provider = self.detect_sender(sender)
        if provider is not None:
            return provider

        if self.config.content_fallback and (sender or "").strip().lower() in DIAGNOSTIC_SENDERS:
            provider = self.detect_content(raw_message)
            if provider is not None:
                logger.info(f"Diagnostic sender {sender!r} resolved to {provider.value} from message content")
            return provider

        return None
