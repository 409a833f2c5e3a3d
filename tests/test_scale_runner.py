from unittest.mock import MagicMock, patch

import pytest

from apps.autoscaler.services.scale_runner import ScaleRunner


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("apps.autoscaler.services.scale_runner.time.sleep") as sleep:
        yield sleep


def test_success_on_first_attempt():
    scale_fn = MagicMock(return_value={"replicas": 4})

    result = ScaleRunner().run(scale_fn, replicas=4, target="default/web", workload="w")

    scale_fn.assert_called_once_with(replicas=4, workload="w")
    assert result["status"] == "success"
    assert result["attempts"] == 1
    assert result["result"] == {"replicas": 4}
    assert result["error"] is None


def test_dry_run_never_calls_scale_fn():
    scale_fn = MagicMock()

    result = ScaleRunner().run(scale_fn, replicas=4, dry_run=True, target="default/web")

    scale_fn.assert_not_called()
    assert result["status"] == "dry_run"
    assert result["attempts"] == 0


def test_retries_then_succeeds(no_sleep):
    scale_fn = MagicMock(side_effect=[RuntimeError("conflict"), {"replicas": 2}])

    result = ScaleRunner(max_retries=2).run(scale_fn, replicas=2)

    assert result["status"] == "success"
    assert result["attempts"] == 2
    assert no_sleep.call_count == 1


def test_gives_up_after_max_retries(no_sleep):
    scale_fn = MagicMock(side_effect=RuntimeError("conflict"))

    result = ScaleRunner(max_retries=2).run(scale_fn, replicas=2)

    assert scale_fn.call_count == 3
    assert no_sleep.call_count == 2
    assert result["status"] == "failed"
    assert result["attempts"] == 3
    assert result["error"] == "conflict"


def test_zero_retries_makes_one_attempt(no_sleep):
    scale_fn = MagicMock(side_effect=RuntimeError("boom"))

    result = ScaleRunner(max_retries=0).run(scale_fn, replicas=2)

    assert scale_fn.call_count == 1
    no_sleep.assert_not_called()
    assert result["status"] == "failed"


def test_backoff_is_capped():
    runner = ScaleRunner(base_backoff_seconds=1.0, max_backoff_seconds=3.0)

    assert 1.0 <= runner._compute_backoff(0) <= 1.2
    assert 3.0 <= runner._compute_backoff(10) <= 3.6
