from decimal import Decimal
from reconciler.config import DetectorConfig, SenderWhitelist, DEFAULT_SENDER_WHITELIST
from reconciler.extraction import ExtractionPipeline, extract
from reconciler.models import Provider

SCENARIO_SMS = "Tk 500.00 received from 01712345678. TrxID BK12ABC3DEF"


def test_scenario_message_is_extracted():
    parsed = extract(SCENARIO_SMS, "bKash")

    assert parsed is not None
    assert parsed.transaction_id == "BK12ABC3DEF"
    assert parsed.amount == Decimal("500.00")
    assert parsed.provider == Provider.BKASH

def test_rejected_sender_and_failed_extraction_are_distinguished():
    pipeline = ExtractionPipeline(DetectorConfig(whitelist=SenderWhitelist(**DEFAULT_SENDER_WHITELIST)))

    assert pipeline.run(SCENARIO_SMS, "+8801555000000") == (None, None)
    assert pipeline.run("Your bKash PIN will expire soon", "bKash") == (Provider.BKASH, None)

    provider, parsed = pipeline.run(SCENARIO_SMS, "bKash")
    assert provider == Provider.BKASH
    assert parsed.transaction_id == "BK12ABC3DEF"

def test_extract_returns_none_without_transaction_id():
    assert extract("Tk 500.00 received from 01712345678.", "bKash") is None

def test_extract_uses_parser_of_detected_provider():
    # Nagad wording with a Rocket sender is read with Rocket's patterns, which need a TxnId label.
    assert extract("You have received Tk. 500.00. Trx ID: NGD123456789", "16222") is None

def test_diagnostic_pipeline_sniffs_content():
    pipeline = ExtractionPipeline(DetectorConfig(
        whitelist=SenderWhitelist(**DEFAULT_SENDER_WHITELIST),
        content_fallback=True,
    ))

    parsed = pipeline.extract(SCENARIO_SMS, "")

    assert parsed.provider == Provider.BKASH
    assert parsed.transaction_id == "BK12ABC3DEF"
