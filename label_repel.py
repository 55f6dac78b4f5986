"""
Label Repelling
Pushes overlapping label boxes apart until none overlap (or the budget runs out)
"""

from typing import NamedTuple, Sequence


class Box(NamedTuple):
    x0: float
    y0: float
    x1: float
    y1: float

    def shifted(self, dx, dy):
        return Box(self.x0 + dx, self.y0 + dy, self.x1 + dx, self.y1 + dy)

    @property
    def center(self):
        return (self.x0 + self.x1) / 2, (self.y0 + self.y1) / 2


class RepelResult(NamedTuple):
    offsets: list      # (dx, dy) per input box, same units as the boxes
    iterations: int
    converged: bool


def penetration(a: Box, b: Box):
    """
    Returns (overlap_x, overlap_y) for two boxes, or None if their interiors
    do not intersect. Boxes sharing an edge do not overlap.
    """
    ox = min(a.x1, b.x1) - max(a.x0, b.x0)
    oy = min(a.y1, b.y1) - max(a.y0, b.y0)
    if ox <= 0 or oy <= 0:
        return None
    return ox, oy


def overlapping_pairs(boxes: Sequence[Box]):
    return [(i, j)
            for i in range(len(boxes))
            for j in range(i + 1, len(boxes))
            if penetration(boxes[i], boxes[j]) is not None]


def repel_boxes(boxes, max_iterations: int = 200, step: float = 1.0) -> RepelResult:
    """
    Separates overlapping boxes (x0, y0, x1, y1).

    Each iteration walks the overlapping pairs in index order and moves both
    boxes of a pair apart along the axis where they overlap least, by half
    the overlap plus step / 2 each. When the centers coincide on that axis
    the lower index goes negative, the higher positive. The result depends
    only on the input order, so identical input gives identical layouts.
    """
    boxes = [Box(*b) for b in boxes]
    offsets = [[0.0, 0.0] for _ in boxes]

    for iteration in range(max_iterations):
        pairs = overlapping_pairs(boxes)
        if not pairs:
            return RepelResult([tuple(o) for o in offsets], iteration, True)

        for i, j in pairs:
            # an earlier push this round may already have separated them
            overlap = penetration(boxes[i], boxes[j])
            if overlap is None:
                continue
            ox, oy = overlap
            (ci_x, ci_y), (cj_x, cj_y) = boxes[i].center, boxes[j].center
            if ox < oy:
                sign = 1.0 if cj_x >= ci_x else -1.0
                shift = (ox + step) / 2
                moves = ((-sign * shift, 0.0), (sign * shift, 0.0))
            else:
                sign = 1.0 if cj_y >= ci_y else -1.0
                shift = (oy + step) / 2
                moves = ((0.0, -sign * shift), (0.0, sign * shift))

            for idx, (dx, dy) in zip((i, j), moves):
                boxes[idx] = boxes[idx].shifted(dx, dy)
                offsets[idx][0] += dx
                offsets[idx][1] += dy

    converged = not overlapping_pairs(boxes)
    return RepelResult([tuple(o) for o in offsets], max_iterations, converged)
