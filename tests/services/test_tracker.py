import asyncio
import base64
import io
import json
from typing import List

import pytest
from PIL import Image

import skintrack.services.tracker as tracker_mod
from skintrack.errors import AnalysisFailed, AnalysisInProgress, SameEntrySelected
from skintrack.oracle.oracle_client import OracleClient, OracleDownstreamError, OracleRequest, OracleResult
from skintrack.pipelines.skin_pipeline import SkinAnalysisPipeline
from skintrack.services.tracker import COMPARISON_FALLBACK_TEXT, SkinTracker
from skintrack.storage.timeline_models import TimelineEntry
from skintrack.storage.timeline_store import TimelineStore


def _data_uri(color=(200, 150, 130)) -> str:
    img = Image.new("RGB", (16, 16), color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class _FakeOracle(OracleClient):
    """
    Classification requests answer with `analysis` (dict, JSON-encoded) and
    comparison requests with `narrative`. Either can be set to raise instead.
    """

    def __init__(self, analysis=None, narrative="Improving.", fail_analyze=False, fail_compare=False):
        self.analysis = analysis if analysis is not None else {"isSkin": True, "isHealthy": True}
        self.narrative = narrative
        self.fail_analyze = fail_analyze
        self.fail_compare = fail_compare
        self.requests: List[OracleRequest] = []

    @property
    def model_id(self) -> str:
        return "fake-oracle"

    async def generate(self, req: OracleRequest) -> OracleResult:
        self.requests.append(req)
        is_analysis = req.response_schema is not None
        if (is_analysis and self.fail_analyze) or (not is_analysis and self.fail_compare):
            raise OracleDownstreamError("simulated outage")
        text = json.dumps(self.analysis) if is_analysis else self.narrative
        return OracleResult(raw_text=text, model_id=self.model_id, latency_ms=1)

    def comparison_calls(self) -> int:
        return sum(1 for r in self.requests if r.response_schema is None)


class _BlockingOracle(_FakeOracle):
    """Holds classification requests until `release` is set."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, req: OracleRequest) -> OracleResult:
        self.started.set()
        await self.release.wait()
        return await super().generate(req)


def _tracker(tmp_path, oracle: OracleClient) -> SkinTracker:
    return SkinTracker(SkinAnalysisPipeline(oracle), TimelineStore(tmp_path / "timeline.jsonl"))


def test_record_analysis_appends_and_persists(tmp_path):
    oracle = _FakeOracle({"isSkin": True, "isHealthy": False, "diseaseName": "Psoriasis"})
    tracker = _tracker(tmp_path, oracle)
    image = _data_uri()

    entry = asyncio.run(tracker.record_analysis(image))

    assert entry.label == "Psoriasis"
    assert entry.image_data == image
    assert entry.analysis.disease_name == "Psoriasis"
    assert tracker.load_history() == [entry]

    # Simulated restart
    restarted = _tracker(tmp_path, oracle)
    assert restarted.load_history() == [entry]


@pytest.mark.parametrize(
    "analysis, label",
    [
        ({"isSkin": False, "isHealthy": False, "diseaseName": "Ghost"}, "Not Skin"),
        ({"isSkin": True, "isHealthy": True, "diseaseName": "Ghost"}, "Healthy Skin"),
        ({"isSkin": True, "isHealthy": False}, "Analysis"),
        ({"isSkin": True, "isHealthy": False, "diseaseName": "Rosacea"}, "Rosacea"),
    ],
)
def test_label_follows_status_priority(tmp_path, analysis, label):
    tracker = _tracker(tmp_path, _FakeOracle(analysis))
    entry = asyncio.run(tracker.record_analysis(_data_uri()))
    assert entry.label == label


def test_failed_analysis_stores_nothing_and_releases_slot(tmp_path):
    oracle = _FakeOracle(fail_analyze=True)
    tracker = _tracker(tmp_path, oracle)

    with pytest.raises(AnalysisFailed):
        asyncio.run(tracker.record_analysis(_data_uri()))
    assert tracker.load_history() == []

    oracle.fail_analyze = False
    asyncio.run(tracker.record_analysis(_data_uri()))
    assert len(tracker.load_history()) == 1


def test_second_concurrent_analysis_is_rejected(tmp_path):
    oracle = _BlockingOracle()
    tracker = _tracker(tmp_path, oracle)

    async def scenario():
        first = asyncio.create_task(tracker.record_analysis(_data_uri()))
        await oracle.started.wait()

        with pytest.raises(AnalysisInProgress):
            await tracker.record_analysis(_data_uri((10, 10, 10)))

        oracle.release.set()
        return await first

    entry = asyncio.run(scenario())
    assert tracker.load_history() == [entry]


def test_timestamps_never_decrease(tmp_path, monkeypatch):
    clock = iter([5_000, 4_000])
    monkeypatch.setattr(tracker_mod, "now_ms", lambda: next(clock))
    tracker = _tracker(tmp_path, _FakeOracle())

    first = asyncio.run(tracker.record_analysis(_data_uri()))
    second = asyncio.run(tracker.record_analysis(_data_uri()))

    assert first.timestamp == 5_000
    assert second.timestamp == 5_000


def test_compare_entries_same_index_never_reaches_comparator(tmp_path):
    oracle = _FakeOracle()
    tracker = _tracker(tmp_path, oracle)
    asyncio.run(tracker.record_analysis(_data_uri()))

    with pytest.raises(SameEntrySelected):
        asyncio.run(tracker.compare_entries(0, 0))
    assert oracle.comparison_calls() == 0


def test_compare_entries_returns_narrative_unmodified(tmp_path):
    narrative = "Lesion border is less defined; redness reduced by roughly half."
    oracle = _FakeOracle(narrative=narrative)
    tracker = _tracker(tmp_path, oracle)
    for ts, color in ((1_000, (200, 90, 90)), (2_000, (210, 170, 160))):
        tracker.append_entry(TimelineEntry.create(image_data=_data_uri(color), analysis=None, timestamp=ts))

    forward = asyncio.run(tracker.compare_entries(0, 1))
    backward = asyncio.run(tracker.compare_entries(1, 0))

    assert forward == (narrative, False)
    assert backward == (narrative, False)

    first, second = [r for r in oracle.requests if r.response_schema is None]
    assert [i.data for i in first.images] == [i.data for i in reversed(second.images)]


def test_compare_entries_failure_uses_fallback_narrative(tmp_path):
    tracker = _tracker(tmp_path, _FakeOracle(fail_compare=True))
    tracker.append_entry(TimelineEntry.create(image_data=_data_uri(), analysis=None, timestamp=1))
    tracker.append_entry(TimelineEntry.create(image_data=_data_uri(), analysis=None, timestamp=2))

    assert asyncio.run(tracker.compare_entries(0, 1)) == (COMPARISON_FALLBACK_TEXT, True)


def test_compare_entries_out_of_range(tmp_path):
    tracker = _tracker(tmp_path, _FakeOracle())
    tracker.append_entry(TimelineEntry.create(image_data=_data_uri(), analysis=None, timestamp=1))

    with pytest.raises(IndexError):
        asyncio.run(tracker.compare_entries(0, 3))


def test_get_tracker_builds_once_from_settings(tmp_path, monkeypatch):
    path = tmp_path / "configured" / "timeline.jsonl"
    monkeypatch.setattr(tracker_mod.settings, "oracle_provider", "mock")
    monkeypatch.setattr(tracker_mod.settings, "timeline_path", str(path))
    monkeypatch.setattr(tracker_mod, "_tracker", None)

    tracker = tracker_mod.get_tracker()
    assert tracker_mod.get_tracker() is tracker

    asyncio.run(tracker.record_analysis(_data_uri()))
    assert len(path.read_text(encoding="utf-8").splitlines()) == 1
