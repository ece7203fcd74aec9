import json
import logging

from config.logging import JsonFormatter, SamplingFilter


def _record(msg="ledger.appended", level=logging.INFO, **extra):
    record = logging.LogRecord("jewelpos.inventory", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extras():
    line = JsonFormatter().format(_record(event="ledger.appended", product_id=7, when=object()))
    payload = json.loads(line)

    assert payload["name"] == "jewelpos.inventory"
    assert payload["level"] == "INFO"
    assert payload["event"] == "ledger.appended"
    assert payload["product_id"] == 7
    assert isinstance(payload["when"], str)
    assert payload["time"].endswith("Z")


def test_sampling_filter_keeps_audit_events():
    sampler = SamplingFilter(rate=0.0, levels=["INFO"], allow_events=["ledger.appended"])

    assert sampler.filter(_record(event="ledger.appended"))
    assert not sampler.filter(_record(msg="idempotency.replayed", event="idempotency.replayed"))
    assert sampler.filter(_record(msg="db.transaction_failed", level=logging.ERROR))


def test_sampling_filter_bad_rate_defaults_to_keep_all():
    assert SamplingFilter(rate="often").filter(_record(msg="anything"))
