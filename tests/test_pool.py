import logging
import sys
import threading
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from image_scroller.models import FrameFailure, OpResult  # noqa: E402
from image_scroller.pool import FailureLog, ProgressCounter, run_pool  # noqa: E402

LOGGER = logging.getLogger("pool-tests")


def _write_payload(target_dir: Path):
    def operation(index: int) -> OpResult:
        (target_dir / f"item_{index:05d}.txt").write_text(f"payload {index * index}\n")
        return OpResult.success()

    return operation


def _snapshot(directory: Path) -> dict:
    return {path.name: path.read_bytes() for path in sorted(directory.iterdir())}


def test_sequential_and_pooled_runs_produce_identical_files(tmp_path):
    sequential_dir = tmp_path / "sequential"
    pooled_dir = tmp_path / "pooled"
    sequential_dir.mkdir()
    pooled_dir.mkdir()

    first = run_pool(range(200), _write_payload(sequential_dir), workers=1, logger=LOGGER)
    second = run_pool(range(200), _write_payload(pooled_dir), workers=8, logger=LOGGER)

    assert first.ok and second.ok
    assert first.succeeded == second.succeeded == 200
    assert _snapshot(sequential_dir) == _snapshot(pooled_dir)


@pytest.mark.parametrize("workers", [1, 4])
def test_failures_do_not_abort_remaining_work(workers):
    attempted = []
    lock = threading.Lock()

    def operation(index: int) -> OpResult:
        with lock:
            attempted.append(index)
        if index in {3, 47}:
            return OpResult.failure(1, f"convert: cannot crop frame {index}")
        return OpResult.success()

    outcome = run_pool(range(100), operation, workers=workers, logger=LOGGER)

    assert sorted(attempted) == list(range(100))
    assert outcome.attempted == 100
    assert outcome.succeeded == 98
    assert outcome.failed_count == 2
    assert [failure.index for failure in outcome.failures] == [3, 47]
    assert outcome.first_failure is not None
    assert outcome.first_failure.index in {3, 47}
    assert "cannot crop" in outcome.failures[0].message


def test_exceptions_are_recorded_as_failures():
    def operation(index: int) -> OpResult:
        if index == 2:
            raise OSError("disk full")
        return OpResult.success()

    outcome = run_pool(range(5), operation, workers=2, logger=LOGGER)

    assert outcome.failed_count == 1
    assert outcome.failures[0].index == 2
    assert "OSError: disk full" in outcome.failures[0].message
    assert outcome.succeeded == 4


def test_sequential_run_preserves_item_order():
    seen = []

    def operation(index: int) -> OpResult:
        seen.append((index, threading.current_thread().name))
        return OpResult.success()

    run_pool([5, 1, 3], operation, workers=1, logger=LOGGER)

    assert [index for index, _ in seen] == [5, 1, 3]
    assert {name for _, name in seen} == {threading.current_thread().name}


def test_empty_work_set_and_invalid_worker_count():
    outcome = run_pool([], lambda index: OpResult.success(), workers=4, logger=LOGGER)
    assert outcome.attempted == 0
    assert outcome.ok

    with pytest.raises(ValueError):
        run_pool(range(3), lambda index: OpResult.success(), workers=0, logger=LOGGER)


def test_progress_reports_are_bounded(caplog):
    counter = ProgressCounter(1000, label="Frames", logger=LOGGER, updates=20)

    with caplog.at_level(logging.INFO, logger="pool-tests"):
        for _ in range(1000):
            counter.increment()

    progress_lines = [record for record in caplog.records if "Frames progress" in record.getMessage()]
    assert counter.completed == 1000
    assert len(progress_lines) == 20
    assert "1000/1000" in progress_lines[-1].getMessage()


def test_failure_log_is_sorted_and_remembers_first():
    log = FailureLog()
    log.record(FrameFailure(index=9, message="late"))
    log.record(FrameFailure(index=2, message="early"))

    assert len(log) == 2
    assert log.first.index == 9
    assert [failure.index for failure in log.snapshot()] == [2, 9]
    assert str(log.snapshot()[0]) == "Frame 2 - early"
