from typing import Optional, Tuple
from reconciler.config import DetectorConfig, load_detector_config
from reconciler.detector import ProviderDetector
from reconciler.models import Provider
from reconciler.parsers import parse_message
from reconciler.schemas import ParsedTransaction


class ExtractionPipeline:
    def __init__(self, config: DetectorConfig):
        self.detector = ProviderDetector(config)

    def run(self, raw_message: str, sender: str) -> Tuple[Optional[Provider], Optional[ParsedTransaction]]:
        """
        Detect the provider and parse the message.

        A None provider means the sender was rejected. A provider with a None
        transaction means the text could not be read as a payment.
        """
        provider = self.detector.detect(sender, raw_message)
        if provider is None:
            return None, None
        parsed = parse_message(provider, raw_message)
        if not parsed.transaction_id:
            return provider, None
        return provider, parsed

    def extract(self, raw_message: str, sender: str) -> Optional[ParsedTransaction]:
        return self.run(raw_message, sender)[1]


default_pipeline = ExtractionPipeline(load_detector_config())


def extract(raw_message: str, sender: str) -> Optional[ParsedTransaction]:
    return default_pipeline.extract(raw_message, sender)
