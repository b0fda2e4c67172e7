"""Tests for non-maximum suppression."""

from knobfinder.detection.nms import drop_nested, nms, suppress
from knobfinder.detection.results import DetectedCircle


def _circle(x, y, score, radius=10.0):
    return DetectedCircle((float(x), float(y)), radius, float(score))


class TestNMS:
    """Test NMS."""

    def test_empty(self):
        """Test empty input."""
        assert nms([], 12) == []

    def test_orders_by_score(self):
        """Test descending score order."""
        circles = [_circle(0, 0, 1), _circle(100, 0, 3), _circle(200, 0, 2)]
        kept = nms(circles, 12)
        assert [c.score for c in kept] == [3.0, 2.0, 1.0]

    def test_suppresses_close_centers(self):
        """Test that weaker neighbours are dropped."""
        strong = _circle(50, 50, 10)
        weak = _circle(55, 50, 5)
        far = _circle(80, 50, 1)
        assert nms([weak, strong, far], 12) == [strong, far]

    def test_distance_equal_to_radius_is_kept(self):
        """Test strict distance comparison."""
        a = _circle(0, 0, 2)
        b = _circle(12, 0, 1)
        assert nms([a, b], 12) == [a, b]

    def test_stable_for_equal_scores(self):
        """Test that equal scores keep input order."""
        a = _circle(0, 0, 5)
        b = _circle(5, 0, 5)
        assert nms([a, b], 12) == [a]
        assert nms([b, a], 12) == [b]

    def test_idempotent(self):
        """Test that a second pass changes nothing."""
        circles = [_circle(x, (x * 7) % 50, x % 9) for x in range(0, 120, 4)]
        once = nms(circles, 12)
        assert nms(once, 12) == once

    def test_kept_centers_are_separated(self):
        """Test pairwise spacing of the survivors."""
        circles = [_circle(x, (x * 7) % 50, x % 9) for x in range(0, 120, 4)]
        kept = nms(circles, 12)
        for i, a in enumerate(kept):
            for b in kept[i + 1:]:
                assert a.distance_to(b) >= 12

    def test_zero_radius_keeps_everything(self):
        """Test radius 0."""
        circles = [_circle(0, 0, 1), _circle(0, 0, 2)]
        assert len(nms(circles, 0)) == 2

    def test_input_not_modified(self):
        """Test that the caller's list is untouched."""
        circles = [_circle(0, 0, 1), _circle(5, 0, 2)]
        before = list(circles)
        nms(circles, 12)
        assert circles == before


class TestSuppress:
    """Test NMS with a result cap."""

    def test_cap(self):
        """Test truncation after NMS."""
        circles = [_circle(x * 20, 0, x) for x in range(10)]
        kept = suppress(circles, 12, 3)
        assert [c.score for c in kept] == [9.0, 8.0, 7.0]

    def test_zero_cap(self):
        """Test max_results of 0."""
        assert suppress([_circle(0, 0, 1)], 12, 0) == []

    def test_inner_ring_removed(self):
        """Test that a weak inner ring of a kept circle is dropped."""
        knob = _circle(100, 100, 232, radius=22)
        inner = _circle(100, 86, 32, radius=12)
        assert suppress([knob, inner], 12, 10) == [knob]


class TestDropNested:
    """Test removal of rings nested in stronger circles."""

    def test_nested_weaker_smaller(self):
        """Test the basic case."""
        outer = _circle(50, 50, 10, radius=20)
        inner = _circle(62, 50, 3, radius=8)
        assert drop_nested([inner, outer]) == [outer]

    def test_separate_circles_kept(self):
        """Test circles whose centers lie outside each other."""
        a = _circle(50, 50, 10, radius=20)
        b = _circle(75, 50, 3, radius=20)
        assert drop_nested([a, b]) == [a, b]

    def test_larger_weaker_circle_kept(self):
        """Test that only smaller circles count as nested."""
        small = _circle(50, 50, 10, radius=8)
        large = _circle(52, 50, 3, radius=30)
        assert drop_nested([small, large]) == [small, large]

    def test_stronger_inner_circle_kept(self):
        """Test that a stronger circle is never dropped by a weaker one."""
        outer = _circle(50, 50, 3, radius=20)
        inner = _circle(60, 50, 10, radius=8)
        assert drop_nested([outer, inner]) == [inner, outer]

    def test_empty(self):
        """Test empty input."""
        assert drop_nested([]) == []
