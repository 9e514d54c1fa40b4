"""
Tests for layout module (guide mapping and row grouping).
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def make_det(text, x, y, w=0.1, h=0.02, conf=0.9):
    """Guide-relative detection centered at (x, y)."""
    from utils.layout import BoundingBox, Detection, GuideRelativeDetection

    bbox = BoundingBox(x - w / 2, y - h / 2, x + w / 2, y + h / 2)
    return GuideRelativeDetection(original=Detection(text, conf, bbox), bbox=bbox)


class TestBoundingBox:
    """Test BoundingBox class."""

    def test_bbox_properties(self):
        """Test bounding box computed properties."""
        from utils.layout import BoundingBox

        bbox = BoundingBox(0.1, 0.2, 0.5, 0.4)

        assert bbox.width == pytest.approx(0.4)
        assert bbox.height == pytest.approx(0.2)
        assert bbox.mid_x == pytest.approx(0.3)
        assert bbox.mid_y == pytest.approx(0.3)

    def test_bbox_from_xywh(self):
        """Test creation from x, y, width, height."""
        from utils.layout import BoundingBox

        bbox = BoundingBox.from_xywh(0.1, 0.2, 0.3, 0.1)

        assert bbox.x2 == pytest.approx(0.4)
        assert bbox.y2 == pytest.approx(0.3)

    def test_bbox_union(self):
        """Test union of two boxes."""
        from utils.layout import BoundingBox

        union = BoundingBox(0.1, 0.1, 0.2, 0.2).union(BoundingBox(0.5, 0.05, 0.6, 0.15))

        assert union.to_tuple() == (0.1, 0.05, 0.6, 0.2)

    def test_center_within_tolerance(self):
        """Centers slightly outside the unit square are kept."""
        from utils.layout import BoundingBox

        assert BoundingBox(1.0, 0.4, 1.1, 0.5).center_within(0.1)
        assert not BoundingBox(1.1, 0.4, 1.3, 0.5).center_within(0.1)


class TestGuideMapping:
    """Test recognizer to guide coordinate mapping."""

    def test_to_guide_relative_flips_y(self):
        """Bottom-left recognizer space becomes top-left guide space."""
        from utils.layout import BoundingBox, GuideRegion, to_guide_relative

        region = GuideRegion(BoundingBox(0.2, 0.2, 0.8, 0.8))
        mapped = to_guide_relative(BoundingBox(0.35, 0.65, 0.45, 0.75), region)

        assert mapped is not None
        assert mapped.x1 == pytest.approx(0.25)
        assert mapped.x2 == pytest.approx(0.25 / 0.6)
        assert mapped.y1 == pytest.approx(1 - 0.55 / 0.6)
        assert mapped.y2 == pytest.approx(0.25)

    def test_outside_guide_is_dropped(self):
        """Boxes centered far outside the guide map to None."""
        from utils.layout import BoundingBox, GuideRegion, to_guide_relative

        region = GuideRegion(BoundingBox(0.2, 0.2, 0.8, 0.8))

        assert to_guide_relative(BoundingBox(0.9, 0.9, 0.95, 0.95), region) is None

    def test_degenerate_region(self):
        """A zero-size guide maps nothing."""
        from utils.layout import BoundingBox, GuideRegion, to_guide_relative

        region = GuideRegion(BoundingBox(0.5, 0.5, 0.5, 0.8))

        assert to_guide_relative(BoundingBox(0.5, 0.6, 0.6, 0.7), region) is None

    def test_flip_portrait(self):
        """Portrait captures swap axes."""
        from utils.layout import BoundingBox, flip_portrait

        flipped = flip_portrait(BoundingBox(0.1, 0.2, 0.3, 0.4))

        assert flipped.to_tuple() == (0.2, 0.1, 0.4, 0.3)

    def test_map_detections_identity(self):
        """Without a mapper only the bounds filter applies."""
        from utils.layout import BoundingBox, Detection, map_detections

        detections = [
            Detection("29", 0.9, BoundingBox(0.8, 0.4, 0.9, 0.45)),
            Detection("noise", 0.5, BoundingBox(1.15, 0.4, 1.25, 0.45)),
        ]
        mapped = map_detections(detections)

        assert [d.text for d in mapped] == ["29"]
        assert mapped[0].bbox == detections[0].bbox

    def test_map_detections_with_region(self):
        """Region mapper converts and filters in one pass."""
        from utils.layout import (
            BoundingBox, Detection, GuideRegion, map_detections, region_mapper
        )

        region = GuideRegion(BoundingBox(0.1, 0.1, 0.9, 0.9))
        detections = [
            Detection("1179", 0.9, BoundingBox(0.3, 0.5, 0.4, 0.52)),
            Detection("ERG", 0.9, BoundingBox(0.0, 0.0, 0.02, 0.02)),
        ]
        mapped = map_detections(detections, region_mapper(region))

        assert [d.text for d in mapped] == ["1179"]
        assert mapped[0].original is detections[0]

    def test_already_relative_passes_through(self):
        """Guide-relative detections are not re-mapped."""
        from utils.layout import map_detections

        det = make_det("4:00.0", 0.2, 0.5)

        assert map_detections([det], mapper=lambda b: None) == [det]


class TestRowGrouping:
    """Test spatial row grouping."""

    def test_groups_by_vertical_center(self):
        """Centers at 0.10 and 0.11 share a row; 0.50 starts another."""
        from utils.layout import group_into_rows

        rows = group_into_rows([
            make_det("a", 0.5, 0.50),
            make_det("b", 0.6, 0.11),
            make_det("c", 0.2, 0.10),
        ], tolerance=0.03)

        assert len(rows) == 2
        assert [d.text for d in rows[0]] == ["c", "b"]
        assert [d.text for d in rows[1]] == ["a"]

    def test_reference_is_first_member(self):
        """Membership is tested against the first member, not a running mean."""
        from utils.layout import group_into_rows

        rows = group_into_rows([
            make_det("a", 0.1, 0.10),
            make_det("b", 0.2, 0.12),
            make_det("c", 0.3, 0.14),
        ], tolerance=0.03)

        assert [[d.text for d in r] for r in rows] == [["a", "b"], ["c"]]

    def test_rows_sorted_left_to_right(self):
        """Members are sorted by left edge."""
        from utils.layout import group_into_rows

        rows = group_into_rows([
            make_det("29", 0.85, 0.4),
            make_det("4:00.0", 0.2, 0.4),
            make_det("1:41.2", 0.6, 0.4),
        ])

        assert [d.text for d in rows[0]] == ["4:00.0", "1:41.2", "29"]

    def test_empty_input(self):
        """No detections, no rows."""
        from utils.layout import group_into_rows

        assert group_into_rows([]) == []

    def test_row_helpers(self):
        """Row bbox, text and confidence helpers."""
        from utils.layout import average_confidence, row_bbox, row_text

        row = [make_det("4:00.0", 0.2, 0.4, conf=0.8), make_det("1179", 0.4, 0.4, conf=1.0)]

        assert row_text(row) == "4:00.0 1179"
        assert row_bbox(row).x1 == pytest.approx(0.15)
        assert row_bbox(row).x2 == pytest.approx(0.45)
        assert average_confidence(row) == pytest.approx(0.9)
        assert average_confidence([]) == 0.0
