from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import orjson

from helmlint.ledger import Ledger
from helmlint.utils import read_jsonl, stable_hash


def test_ledger_chain_detects_tampering(tmp_path: Path) -> None:
    ledger_path = tmp_path / "ledger.jsonl"
    ledger = Ledger(ledger_path)
    ledger.append("RUN_START", {"a": 1})
    ledger.append("RUN_END", {"b": 2})
    ok, _ = Ledger.verify_chain(ledger_path)
    assert ok

    lines = ledger_path.read_text(encoding="utf-8").splitlines()
    entry = orjson.loads(lines[0])
    entry["payload"]["a"] = 2
    lines[0] = orjson.dumps(entry, option=orjson.OPT_SORT_KEYS).decode("utf-8")
    ledger_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    ok, message = Ledger.verify_chain(ledger_path)
    assert not ok
    assert message == "hash mismatch at 0"


def test_ledger_chain_detects_dropped_event(tmp_path: Path) -> None:
    ledger_path = tmp_path / "ledger.jsonl"
    ledger = Ledger(ledger_path)
    for idx in range(3):
        ledger.append("SCANNED", {"files": idx})
    lines = ledger_path.read_text(encoding="utf-8").splitlines()
    ledger_path.write_text("\n".join([lines[0], lines[2]]) + "\n", encoding="utf-8")
    assert Ledger.verify_chain(ledger_path) == (False, "prev_hash mismatch at 1")


def test_ledger_resumes_existing_chain(tmp_path: Path) -> None:
    ledger_path = tmp_path / "ledger.jsonl"
    Ledger(ledger_path).append("RUN_START", {})
    Ledger(ledger_path).append("RUN_END", {})
    assert Ledger.verify_chain(ledger_path) == (True, "ok")


def test_ledger_concurrent_appends_stay_chained(tmp_path: Path) -> None:
    ledger_path = tmp_path / "ledger.jsonl"
    ledger = Ledger(ledger_path)
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda idx: ledger.append("POLICY_RESULT", {"idx": idx}), range(64)))

    assert Ledger.verify_chain(ledger_path) == (True, "ok")
    assert len(read_jsonl(ledger_path)) == 64
    assert sorted(e["payload"]["idx"] for e in ledger.events("POLICY_RESULT")) == list(range(64))


def test_ledger_in_memory_payloads_are_jsonable() -> None:
    ledger = Ledger()
    ledger.append("RUN_START", {"dir": Path("/tmp/x"), "tokens": {"b", "a"}})
    (event,) = ledger.events()
    assert event["payload"] == {"dir": "/tmp/x", "tokens": ["a", "b"]}
    assert ledger.events("RUN_END") == []


def test_canonical_hash_stability() -> None:
    payload = {"a": 1, "b": [2, 3]}
    assert stable_hash(payload) == stable_hash({"b": [2, 3], "a": 1})
