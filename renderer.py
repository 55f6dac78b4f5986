"""
Chart Rendering
Draws a ChartSpec onto its own matplotlib Figure and serializes it to PNG

Each chart kind has one draw function (see DRAWERS). Styling comes from the
spec and a seaborn style context that only lives for the one render, so no
pyplot/global state leaks from one chart into the next.
"""

import io
import math
import struct

import matplotlib as mpl
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.cm import ScalarMappable
from matplotlib.colors import Normalize
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Circle
from matplotlib.ticker import FuncFormatter

from chart_spec import REQUIRED_CHANNELS, ChartKind, ChartSpec, RenderedArtifact
from errors import RenderError
from label_repel import repel_boxes


# ---------- CONFIG ----------
LABEL_OFFSET_PT       = 4        # bar value labels, away from the bar end
INSIDE_LABEL_COLOR    = "white"
ORBIT_LABEL_GAP_PT    = 6        # radial labels, beyond the point's edge
ORBIT_LABEL_ALPHA     = 0.3      # background patch behind radial labels
SCATTER_POINT_AREA    = 36
CONNECTOR_MIN_PX      = 2.0
COLORMAP              = "viridis"

SEABORN_STYLE = {
    ChartKind.BAR: "whitegrid",
    ChartKind.BAR_LABELED_HORIZONTAL: "whitegrid",
    ChartKind.RADIAL_ORBIT: "white",
    ChartKind.SCATTER: "whitegrid",
}

# Channels that must hold numbers when they are bound
NUMERIC_CHANNELS = {
    ChartKind.BAR: ("y", "color"),
    ChartKind.BAR_LABELED_HORIZONTAL: ("y", "color"),
    ChartKind.RADIAL_ORBIT: ("x", "size"),
    ChartKind.SCATTER: ("x", "y", "color"),
}


# ---------- SHARED HELPERS ----------

def format_number(value, _pos=None) -> str:
    """
    Tick formatter: thousands separator, no trailing zeros.
    1392700 -> '1,392,700', 2.5 -> '2.5'
    """
    value = float(value) + 0.0  # folds -0.0 into 0.0
    if value.is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def order_records(table: pd.DataFrame, column: str, direction: str = "ascending") -> pd.DataFrame:
    """
    Returns the table sorted by `column`. The sort is stable in both
    directions: rows with equal values keep their table order.
    """
    values = table[column].tolist()
    positions = sorted(range(len(values)), key=values.__getitem__,
                       reverse=(direction == "descending"))
    return table.iloc[positions]


def label_placement(value: float, threshold: float) -> str:
    """'outside' for short bars (value < threshold), 'inside' otherwise."""
    return "outside" if value < threshold else "inside"


def is_orbit_labelled(distance: float, cutoff: float) -> bool:
    return distance > cutoff


def size_scale(values, reference: float, max_area: float) -> np.ndarray:
    """
    Area-proportional marker sizes (matplotlib `s`, in points^2).
    A value equal to `reference` gets `max_area`; half of it gets half the area.
    """
    values = np.clip(np.asarray(values, dtype=float), 0, None)
    return max_area * values / reference


def validate_spec(spec: ChartSpec) -> None:
    """
    Raises RenderError when the spec cannot be drawn from its table.
    """
    table = spec.table
    kind = spec.chart_kind
    if table is None or len(table) == 0:
        raise RenderError(f"{spec.output_path}: table is empty")

    unbound = [c for c in REQUIRED_CHANNELS[kind] if not spec.column(c)]
    if unbound:
        raise RenderError(f"{spec.output_path}: {kind.value} chart needs channel(s) "
                          f"{', '.join(unbound)}")

    absent = sorted({col for col in spec.field_map.values() if col not in table.columns})
    if absent:
        raise RenderError(f"{spec.output_path}: field_map references missing column(s) "
                          f"{', '.join(absent)}")

    for channel, column in spec.field_map.items():
        if table[column].isna().any():
            raise RenderError(f"{spec.output_path}: column {column!r} ({channel}) "
                              f"has missing values")
        if channel in NUMERIC_CHANNELS[kind] and not pd.api.types.is_numeric_dtype(table[column]):
            raise RenderError(f"{spec.output_path}: column {column!r} ({channel}) "
                              f"is not numeric")


def _value_colors(spec, fig, ax, frame):
    """
    Bar/point colors: a viridis scale (with colorbar) when `color` is bound,
    otherwise the style's bar_color or the first seaborn palette color.
    """
    column = spec.column("color")
    if column is None:
        return spec.style_options["bar_color"] or sns.color_palette("deep")[0]

    values = frame[column].to_numpy(dtype=float)
    norm = Normalize(vmin=values.min(), vmax=values.max())
    cmap = mpl.colormaps[COLORMAP]
    colorbar = fig.colorbar(ScalarMappable(norm=norm, cmap=cmap), ax=ax,
                            format=FuncFormatter(format_number))
    colorbar.set_label(column)
    return cmap(norm(values))


# ---------- CHART KINDS ----------

def draw_bar(spec: ChartSpec, fig: Figure, ax):
    """Vertical columns, one per record, in sort order. No value labels."""
    ordered = order_records(spec.table, spec.column("order"),
                            spec.style_options["sort_direction"])
    positions = np.arange(len(ordered))

    ax.bar(positions, ordered[spec.column("y")].to_numpy(dtype=float),
           color=_value_colors(spec, fig, ax, ordered))

    ax.set_xticks(positions)
    ax.set_xticklabels(ordered[spec.column("x")].astype(str), rotation=45, ha="right")
    ax.yaxis.set_major_formatter(FuncFormatter(format_number))
    ax.set_xlabel(spec.column("x"))
    ax.set_ylabel(spec.column("y"))
    fig.tight_layout()


def draw_bar_labeled_horizontal(spec: ChartSpec, fig: Figure, ax):
    """
    Horizontal bars, each tagged with its value (one decimal).
    Short bars get the label just past the bar end; long ones get it
    inside the bar, right-aligned, in a light color.
    """
    ordered = order_records(spec.table, spec.column("order"),
                            spec.style_options["sort_direction"])
    positions = np.arange(len(ordered))
    values = ordered[spec.column("y")].to_numpy(dtype=float)
    threshold = spec.style_options["label_inside_threshold"]

    ax.barh(positions, values, color=_value_colors(spec, fig, ax, ordered))

    for pos, value in zip(positions, values):
        # mirror the offsets for bars growing leftwards
        direction = -1 if value < 0 else 1
        if label_placement(value, threshold) == "outside":
            offset, align, extra = LABEL_OFFSET_PT, "left", {}
        else:
            offset, align, extra = -LABEL_OFFSET_PT, "right", {"color": INSIDE_LABEL_COLOR}
        if direction < 0:
            align = "right" if align == "left" else "left"
        ax.annotate(f"{value:.1f}", xy=(value, pos), xytext=(direction * offset, 0),
                    textcoords="offset points", ha=align, va="center", **extra)

    ax.set_yticks(positions)
    ax.set_yticklabels(ordered[spec.column("x")].astype(str))
    # the bars carry their own values, the value axis would only repeat them
    ax.tick_params(axis="x", labelbottom=False)
    ax.set_xlabel(spec.column("y"))
    fig.tight_layout()


def draw_radial_orbit(spec: ChartSpec, fig: Figure, ax):
    """
    Concentric orbit rings around the origin (radius = distance) with each
    body drawn on the positive x-axis, sized by area. Bodies farther out
    than label_distance_cutoff get a name tag on a faint background patch.
    """
    style = spec.style_options
    ordered = order_records(spec.table, spec.column("order"), style["sort_direction"])
    distances = ordered[spec.column("x")].to_numpy(dtype=float)
    sizes = ordered[spec.column("size")].to_numpy(dtype=float)
    names = ordered[spec.column("label")].astype(str).tolist()

    if (distances < 0).any():
        raise RenderError(f"{spec.output_path}: orbit distances must not be negative")
    reference = sizes.max()
    if reference <= 0:
        raise RenderError(f"{spec.output_path}: size channel has no positive values")

    palette = sns.color_palette("deep")
    ring_color, point_color = palette[7], palette[1]
    areas = size_scale(sizes, reference, style["max_point_area"])

    for radius in distances:
        ax.add_patch(Circle((0, 0), radius, fill=False, edgecolor=ring_color,
                            linewidth=0.8, alpha=0.6))
    ax.scatter(distances, np.zeros_like(distances), s=areas, color=point_color,
               edgecolor="black", linewidth=0.4, zorder=3)

    cutoff = style["label_distance_cutoff"]
    for name, radius, area in zip(names, distances, areas):
        if not is_orbit_labelled(radius, cutoff):
            continue
        gap = math.sqrt(area / math.pi) + ORBIT_LABEL_GAP_PT
        ax.annotate(name, xy=(radius, 0), xytext=(gap, 0), textcoords="offset points",
                    ha="left", va="center", zorder=4,
                    bbox=dict(boxstyle="round,pad=0.3", facecolor="white",
                              edgecolor="none", alpha=ORBIT_LABEL_ALPHA))

    breaks = style["size_legend_breaks"]
    if breaks:
        handles = [Line2D([], [], linestyle="", marker="o", color=point_color,
                          markeredgecolor="black", markeredgewidth=0.4,
                          markersize=math.sqrt(area), label=format_number(b))
                   for b, area in zip(breaks, size_scale(breaks, reference, style["max_point_area"]))]
        ax.legend(handles=handles, title=spec.column("size"), loc="upper left",
                  frameon=False, labelspacing=1.5, borderpad=1.0)

    limit = max(distances.max(), 1.0) * 1.08
    ax.set_xlim(-limit, limit)
    ax.set_ylim(-limit, limit)
    ax.set_aspect("equal")
    ax.set_axis_off()
    fig.tight_layout()


def draw_scatter(spec: ChartSpec, fig: Figure, ax):
    """
    Points at (x, y) labelled by name. Labels that collide are pushed apart
    with label_repel and tied back to their point with a thin line.
    """
    table = spec.table
    xs = table[spec.column("x")].to_numpy(dtype=float)
    ys = table[spec.column("y")].to_numpy(dtype=float)
    names = table[spec.column("label")].astype(str).tolist()

    ax.scatter(xs, ys, s=SCATTER_POINT_AREA, color=_value_colors(spec, fig, ax, table),
               clip_on=False, zorder=3)
    ax.set_aspect("equal", adjustable="datalim")
    ax.xaxis.set_major_formatter(FuncFormatter(format_number))
    ax.yaxis.set_major_formatter(FuncFormatter(format_number))
    ax.set_xlabel(spec.column("x"))
    ax.set_ylabel(spec.column("y"))

    texts = [ax.text(x, y, name, ha="left", va="bottom", fontsize=9,
                     clip_on=False, zorder=4)
             for x, y, name in zip(xs, ys, names)]

    fig.tight_layout()
    repel_texts(fig, ax, texts, list(zip(xs, ys)),
                max_iterations=spec.style_options["repel_max_iterations"])


def repel_texts(fig: Figure, ax, texts, anchors, max_iterations=200):
    """
    Moves overlapping texts apart in display space, then writes the new
    positions back in data coordinates. Axis limits are frozen first so
    pixel and data positions stay in step.
    """
    fig.canvas.draw()
    ax.set_xlim(ax.get_xlim())
    ax.set_ylim(ax.get_ylim())
    renderer = fig.canvas.get_renderer()

    boxes = [tuple(t.get_window_extent(renderer=renderer).extents) for t in texts]
    result = repel_boxes(boxes, max_iterations=max_iterations)

    to_data = ax.transData.inverted()
    for text, (dx, dy), (ax_x, ax_y) in zip(texts, result.offsets, anchors):
        if dx == 0 and dy == 0:
            continue
        px, py = ax.transData.transform(text.get_position())
        new_x, new_y = to_data.transform((px + dx, py + dy))
        text.set_position((new_x, new_y))
        if math.hypot(dx, dy) >= CONNECTOR_MIN_PX:
            ax.add_line(Line2D([ax_x, new_x], [ax_y, new_y], linewidth=0.5,
                               color="grey", clip_on=False, zorder=2))
    return result


DRAWERS = {
    ChartKind.BAR: draw_bar,
    ChartKind.BAR_LABELED_HORIZONTAL: draw_bar_labeled_horizontal,
    ChartKind.RADIAL_ORBIT: draw_radial_orbit,
    ChartKind.SCATTER: draw_scatter,
}


# ---------- PUBLIC API ----------

def build_figure(spec: ChartSpec) -> Figure:
    """
    Validates the spec and draws it onto a fresh Figure (Agg canvas).
    Raises RenderError for an empty table or unusable field_map.
    """
    validate_spec(spec)
    with sns.axes_style(SEABORN_STYLE[spec.chart_kind]):
        fig = Figure(figsize=(spec.width, spec.height), dpi=spec.dpi)
        FigureCanvasAgg(fig)
        ax = fig.add_subplot()
        if spec.style_options["title"]:
            ax.set_title(spec.style_options["title"], fontsize=14, fontweight="bold")
        DRAWERS[spec.chart_kind](spec, fig, ax)
    return fig


def render(spec: ChartSpec) -> RenderedArtifact:
    """
    Renders `spec` to PNG bytes at width x height inches and spec.dpi.
    Identical specs over identical tables give identical bytes.
    """
    fig = build_figure(spec)
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=spec.dpi)
    image = buf.getvalue()
    # IHDR: width and height are the first two big-endian ints after the signature
    width, height = struct.unpack(">II", image[16:24])
    return RenderedArtifact(image=image, width=width, height=height)
