#!/usr/bin/env python3

"""
circle_packing_cli.py

CLI tools for turning a list of weights into a packed-circle layout.

This module reads weights (or labelled items) from a YAML config and/or the
command line, packs one circle per weight with :func:`circle_packing.circlify`,
maps the packed result onto a physical board (mm), writes a CSV layout and
optionally an SVG accurate to millimetre scaling.

Typical usage:
    $ python3 circle_packing_cli.py --config config.yaml --pretty
    $ python3 circle_packing_cli.py --weights 4 1 1 --show-enclosure
    $ python3 circle_packing_cli.py --random 12 --seed 7

The public entry point is :func:`main`.

Outputs per run:
  - circlify_<ID>_layout.csv   (index, label, weight, grid_cell, x_mm, y_mm, diameter_mm)
  - circlify_<ID>_layout.svg   (mm-accurate layout, optional)
and prints a JSON summary to stdout (optionally pretty).
"""

from __future__ import annotations
import argparse, csv, json, math, os, uuid
import xml.etree.ElementTree as ET
from typing import List, Tuple, Dict, Any, Optional, Sequence

import numpy as np
import yaml

from circle_geometry import Circle, PackingPreconditionError, ensure_bool
from circle_packing import circlify, find_overlaps

# =========================
# Configurable constants
# =========================
# Defaults for optional inputs
DEFAULT_TARGET_ENCLOSURE = (0.0, 0.0, 1.0)     # (x, y, r) in unit space
DEFAULT_BOARD_SIZE_MM = (300.0, 300.0)         # (width, height)
DEFAULT_PADDING_MM = 0.0                       # shaved off every drawn radius
DEFAULT_OUTDIR = "./circle_packing_outputs"

# Random demo weights
RANDOM_WEIGHT_RANGE = (0.3, 1.0)               # uniform [low, high)

# Grid / rounding
DEFAULT_GRID_DIVISIONS = 10
MAX_GRID_DIVISIONS = 26                        # one column letter per division, A..Z
DEFAULT_GRID_LABEL_BASE = "A"
DEFAULT_BOUNDARY_EPSILON = 1e-9
ROUND_MODES = {"nearest", "floor", "ceil"}
DEFAULT_ROUND_MODE = "nearest"
DEFAULT_ROUND_STEP_MM = 0.1

CSV_FIELDS = ["index", "label", "weight", "grid_cell", "x_mm", "y_mm", "diameter_mm"]
ENCLOSURE_LABEL = "enclosure"


# =========================
# Utility helpers
# =========================
def announce(step: str, inputs: Dict[str, Any]):
    """
    Log a structured event to stdout for debugging and automation.
    States the purpose & minimal inputs before significant calls.
    """
    print(f"[STEP] {step} | inputs: " + ", ".join(f"{k}={v}" for k, v in inputs.items()))


def round_mm(value_mm: float, mode: str, step_mm: float) -> float:
    if step_mm <= 0:
        raise PackingPreconditionError("mm_rounding.step_mm must be > 0")
    q = value_mm / step_mm
    if mode == "nearest": r = round(q)
    elif mode == "floor": r = math.floor(q)
    elif mode == "ceil": r = math.ceil(q)
    else: raise PackingPreconditionError(f"Unsupported rounding mode: {mode}")
    # strip float noise such as 12.300000000000001
    return round(r * step_mm, 9)


def grid_cell_for(x_mm: float, y_mm: float, board_w_mm: float, board_h_mm: float, grid_n: int,
                  epsilon: float, base_letter: str = DEFAULT_GRID_LABEL_BASE) -> str:
    cell_w = board_w_mm / float(grid_n)
    cell_h = board_h_mm / float(grid_n)
    col = int(math.floor((x_mm - epsilon) / cell_w))
    row = int(math.floor((y_mm - epsilon) / cell_h))
    col = max(0, min(grid_n - 1, col))
    row = max(0, min(grid_n - 1, row))
    return chr(ord(base_letter) + col) + str(row + 1)


def _sanitize_id(text: str) -> str:
    s = "".join(ch if ch.isalnum() or ch in "-_." else "-" for ch in (text or ""))
    return s.strip("-") or "unnamed"


# =========================
# Inputs
# =========================
def random_weights(count: int, seed: Optional[int] = None,
                   low: float = RANDOM_WEIGHT_RANGE[0], high: float = RANDOM_WEIGHT_RANGE[1]) -> List[float]:
    """Demo weights drawn uniformly from [low, high)."""
    ensure_bool(count >= 0, f"random count must be >= 0, got {count}", PackingPreconditionError)
    rng = np.random.default_rng(seed)
    return [float(v) for v in rng.uniform(low, high, size=count)]


def _normalize_items(seq) -> List[Tuple[str, float]]:
    """Accept numbers, '{name, weight}' dicts or '(name, weight)' pairs; coerce to (label, weight)."""
    out = []
    for idx, it in enumerate(seq or []):
        if isinstance(it, dict):
            if "weight" not in it:
                raise PackingPreconditionError(f"Item #{idx} has no 'weight': {it}")
            out.append((str(it.get("name", f"item-{idx}")), it["weight"]))
        elif isinstance(it, (list, tuple)) and len(it) == 2:
            out.append((str(it[0]), it[1]))
        elif isinstance(it, (int, float, str)) and not isinstance(it, bool):
            out.append((f"item-{idx}", it))
        else:
            raise PackingPreconditionError(f"Bad item: {it!r}")
    return out


def items_from_config(cfg: Dict[str, Any]) -> List[Tuple[str, float]]:
    """Resolve 'items', 'weights' or 'random' (first one present wins)."""
    if cfg.get("items"):
        return _normalize_items(cfg["items"])
    if cfg.get("weights"):
        return _normalize_items(cfg["weights"])
    rnd = cfg.get("random")
    if rnd:
        count = int(rnd.get("count", 0)) if isinstance(rnd, dict) else int(rnd)
        seed = rnd.get("seed") if isinstance(rnd, dict) else None
        return _normalize_items(random_weights(count, seed))
    return []


def sort_items(items: Sequence[Tuple[str, float]]) -> List[Tuple[str, float]]:
    """Largest weight first; equal weights keep their input order."""
    return sorted(((label, float(w)) for label, w in items), key=lambda t: t[1], reverse=True)


# =========================
# Board mapping
# =========================
def to_board(circle: Circle, board_w_mm: float, board_h_mm: float, padding_mm: float = 0.0,
             target: Circle = Circle(*DEFAULT_TARGET_ENCLOSURE)) -> Circle:
    """
    Map a circle packed into ``target`` onto the board: ``target`` lands on the
    largest circle centered on the board, then ``padding_mm`` is shaved off the radius.
    """
    s = min(board_w_mm, board_h_mm) / 2.0 / target.r
    return Circle((circle.x - target.x) * s + board_w_mm / 2.0,
                  (circle.y - target.y) * s + board_h_mm / 2.0,
                  max(0.0, circle.r * s - padding_mm))


# =========================
# Layout exports
# =========================
def write_layout_csv(
    csv_path: str,
    placements: list[dict],
    board_w_mm: float,
    board_h_mm: float,
    grid_n: int,
    boundary_epsilon: float,
    mm_round_mode: str,
    mm_round_step: float,
) -> None:
    """
    Write a CSV containing the physical circle layout in millimetres.

    One row per circle with the grid cell index, millimetre coordinates of the
    center and the diameter. Rows are ordered by grid row, then column, then
    diameter (largest first).

    Args:
        csv_path: Output CSV file path.
        placements: Board-space placements (``label``, ``weight``, ``board`` circle).
        board_w_mm: Board width in millimetres.
        board_h_mm: Board height in millimetres.
        grid_n: Number of grid divisions per side.
        boundary_epsilon: Margin used when interpreting border cells.
        mm_round_mode: Rounding mode for coordinates and diameters.
        mm_round_step: Step size for rounding in mm.

    Returns:
        None.
    """
    if mm_round_mode not in ROUND_MODES:
        raise PackingPreconditionError(f"mm_rounding.mode must be one of {sorted(ROUND_MODES)}")

    rows = []
    for idx, pl in enumerate(placements):
        c = pl["board"]
        cell = grid_cell_for(c.x, c.y, board_w_mm, board_h_mm, grid_n, boundary_epsilon)
        rows.append({
            "index": idx,
            "label": pl["label"],
            "weight": "" if pl["weight"] is None else pl["weight"],
            "grid_cell": cell,
            "x_mm": round_mm(c.x, mm_round_mode, mm_round_step),
            "y_mm": round_mm(c.y, mm_round_mode, mm_round_step),
            "diameter_mm": round_mm(2 * c.r, mm_round_mode, mm_round_step),
        })

    def sort_key(r):
        col = ord(r["grid_cell"][0]) - ord(DEFAULT_GRID_LABEL_BASE)
        row = int(r["grid_cell"][1:]) - 1
        return (row, col, -float(r["diameter_mm"]))

    rows.sort(key=sort_key)
    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
    with open(csv_path, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(rows)


def write_layout_svg(
    svg_path: str,
    placements: list[dict],
    board_w_mm: float,
    board_h_mm: float,
    grid_n: int,
    mm_round_mode: str,
    mm_round_step: float,
    include_grid: bool = True,
    transparent_bg: bool = True,
    circle_stroke_mm: float = 0.2,
) -> None:
    """
    Write an SVG layout file of the board-space circles in millimetre units.

    Args:
        svg_path: Output SVG file path.
        placements: Board-space placements (``label``, ``weight``, ``board`` circle).
        board_w_mm: Physical board width in millimetres.
        board_h_mm: Physical board height in millimetres.
        grid_n: Number of grid subdivisions drawn when ``include_grid`` is set.
        mm_round_mode: Rounding mode used for exported millimetre values.
        mm_round_step: Increment used when rounding millimetre values.
        include_grid: Whether to draw grid lines and labels.
        transparent_bg: Whether to omit the background rectangle.
        circle_stroke_mm: Stroke width for circles.

    Returns:
        None. Writes an SVG file to ``svg_path``.
    """
    svg = ET.Element(
        "svg",
        xmlns="http://www.w3.org/2000/svg",
        version="1.1",
        width=f"{board_w_mm}mm",
        height=f"{board_h_mm}mm",
        viewBox=f"0 0 {board_w_mm} {board_h_mm}",
    )

    if not transparent_bg:
        ET.SubElement(svg, "rect", x="0", y="0",
                      width=str(board_w_mm), height=str(board_h_mm), fill="white")

    if include_grid and grid_n > 0:
        grid = ET.SubElement(svg, "g", id="grid", **{"stroke": "#888", "stroke-width": "0.2",
                                                     "fill": "none", "opacity": "0.35"})
        step_x = board_w_mm / float(grid_n)
        for i in range(grid_n + 1):
            x = i * step_x
            ET.SubElement(grid, "line", x1=str(x), y1="0", x2=str(x), y2=str(board_h_mm))
        step_y = board_h_mm / float(grid_n)
        for j in range(grid_n + 1):
            y = j * step_y
            ET.SubElement(grid, "line", x1="0", y1=str(y), x2=str(board_w_mm), y2=str(y))
        labels = ET.SubElement(svg, "g", id="grid-labels", fill="#666", **{"font-size": "3"})
        for i in range(grid_n):
            ET.SubElement(labels, "text", x=str(i * step_x + 1.5), y="3.5").text = chr(ord(DEFAULT_GRID_LABEL_BASE) + i)
        for j in range(grid_n):
            ET.SubElement(labels, "text", x="1.5", y=str(j * step_y + 4.5)).text = str(j + 1)

    grp = ET.SubElement(svg, "g", id="circles", fill="none", stroke="black",
                        **{"stroke-width": str(circle_stroke_mm)})
    for idx, pl in enumerate(placements):
        c = pl["board"]
        el = ET.SubElement(grp, "circle",
                           id=f"c{idx}-{_sanitize_id(pl['label'])}",
                           cx=str(round_mm(c.x, mm_round_mode, mm_round_step)),
                           cy=str(round_mm(c.y, mm_round_mode, mm_round_step)),
                           r=str(round_mm(2 * c.r, mm_round_mode, mm_round_step) / 2.0))
        # mirror the CSV columns
        el.set("data-label", pl["label"])
        if pl["weight"] is not None:
            el.set("data-weight", str(pl["weight"]))
        else:
            el.set("stroke-dasharray", "1,1")

    ET.ElementTree(svg).write(svg_path, encoding="utf-8", xml_declaration=True)
    announce("WRITE_LAYOUT_SVG", {"svg_path": svg_path})


# =========================
# Main pipeline
# =========================
def circlify_layout(
    items: Sequence[Tuple[str, float]],
    target_enclosure: Tuple[float, float, float] = DEFAULT_TARGET_ENCLOSURE,
    show_enclosure: bool = False,
    outdir: str = DEFAULT_OUTDIR,
    layout_cfg: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Pack ``items`` (``(label, weight)`` pairs), map the result onto the board and
    export the layout files.

    Returns a summary dictionary, or ``{'error': '...'}`` on failure.
    """
    try:
        layout_cfg = layout_cfg or {}
        ensure_bool(isinstance(layout_cfg, dict), "layout config must be a mapping.", PackingPreconditionError)
        board_w_mm, board_h_mm = (float(v) for v in layout_cfg.get("board_size_mm", DEFAULT_BOARD_SIZE_MM))
        padding_mm = float(layout_cfg.get("padding_mm", DEFAULT_PADDING_MM))
        grid_divs = int(layout_cfg.get("grid_divisions", DEFAULT_GRID_DIVISIONS))
        boundary_epsilon = float(layout_cfg.get("boundary_epsilon", DEFAULT_BOUNDARY_EPSILON))
        mm_round_mode = str(layout_cfg.get("mm_round_mode", DEFAULT_ROUND_MODE)).lower()
        mm_round_step = float(layout_cfg.get("mm_round_step", DEFAULT_ROUND_STEP_MM))
        export_csv = bool(layout_cfg.get("export_csv", True))
        export_svg = bool(layout_cfg.get("export_svg", True))
        svg_include_grid = bool(layout_cfg.get("svg_include_grid", True))
        svg_transparent = bool(layout_cfg.get("svg_transparent_bg", True))
        verbose = bool(layout_cfg.get("verbose", False))

        # Validate inputs
        ensure_bool(board_w_mm > 0 and board_h_mm > 0, "board_size_mm must be positive.",
                    PackingPreconditionError)
        ensure_bool(1 <= grid_divs <= MAX_GRID_DIVISIONS,
                    f"grid_divisions must be between 1 and {MAX_GRID_DIVISIONS}.", PackingPreconditionError)
        ensure_bool(mm_round_mode in ROUND_MODES,
                    f"mm_rounding.mode must be one of {sorted(ROUND_MODES)}", PackingPreconditionError)
        ensure_bool(isinstance(target_enclosure, (list, tuple)) and len(target_enclosure) == 3,
                    "target_enclosure must be (x, y, r).", PackingPreconditionError)
        target = Circle(*(float(v) for v in target_enclosure))

        ordered = sort_items(items)
        weights = [w for _, w in ordered]

        announce("CIRCLIFY", {"circles": len(weights), "target": tuple(target), "show_enclosure": show_enclosure})
        circles = circlify(weights, target_enclosure=target, show_enclosure=show_enclosure, verbose=verbose)
        print(f"[OK] Packed {len(weights)} circles.")

        packed = circles[:len(weights)]
        overlaps = find_overlaps(packed)
        if overlaps:
            print(f"[WARN] {len(overlaps)} overlapping pairs after packing: {overlaps[:5]}")

        # Labels follow the sorted order circlify returns
        labels = [label for label, _ in ordered]
        placed_weights: List[Optional[float]] = list(weights)
        if show_enclosure and circles:
            labels.append(ENCLOSURE_LABEL)
            placed_weights.append(None)

        placements = []
        for label, w, c in zip(labels, placed_weights, circles):
            placements.append({
                "label": label,
                "weight": w,
                "circle": c,
                "board": to_board(c, board_w_mm, board_h_mm, padding_mm, target),
            })

        session_id = uuid.uuid4().hex
        result_paths: Dict[str, str] = {}

        if export_csv or export_svg:
            os.makedirs(outdir, exist_ok=True)

        if export_csv:
            csv_path = os.path.join(outdir, f"circlify_{session_id}_layout.csv")
            announce("WRITE_LAYOUT_CSV", {"csv_path": csv_path, "rows": len(placements)})
            write_layout_csv(
                csv_path=csv_path,
                placements=placements,
                board_w_mm=board_w_mm, board_h_mm=board_h_mm,
                grid_n=grid_divs,
                boundary_epsilon=boundary_epsilon,
                mm_round_mode=mm_round_mode,
                mm_round_step=mm_round_step,
            )
            print(f"[OK] CSV layout saved: {csv_path}")
            result_paths["csv_layout"] = csv_path

        if export_svg:
            svg_path = os.path.join(outdir, f"circlify_{session_id}_layout.svg")
            write_layout_svg(
                svg_path=svg_path,
                placements=placements,
                board_w_mm=board_w_mm, board_h_mm=board_h_mm,
                grid_n=grid_divs,
                mm_round_mode=mm_round_mode,
                mm_round_step=mm_round_step,
                include_grid=svg_include_grid,
                transparent_bg=svg_transparent,
            )
            print(f"[OK] SVG layout saved: {svg_path}")
            result_paths["svg_layout"] = svg_path

        return {
            "circles": [
                {"label": pl["label"],
                 "weight": pl["weight"],
                 "unit": tuple(pl["circle"]),
                 "board_mm": tuple(pl["board"])}
                for pl in placements
            ],
            "overlaps": len(overlaps),
            "target_enclosure": tuple(target),
            "board_size_mm": (board_w_mm, board_h_mm),
            "mm_rounding": {"mode": mm_round_mode, "step_mm": mm_round_step},
            "session_id": session_id,
            **result_paths,
        }

    except Exception as e:
        # Any caught error returns the single-key error structure
        return {"error": str(e)}


# =========================
# CLI
# =========================
def layout_cfg_from_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the YAML 'physical' block and export flags into circlify_layout's layout_cfg."""
    ensure_bool(isinstance(cfg, dict), "config root must be a mapping.", PackingPreconditionError)
    phys = cfg.get("physical", {}) or {}
    ensure_bool(isinstance(phys, dict), "'physical' must be a mapping.", PackingPreconditionError)
    mmr = phys.get("mm_rounding", {}) or {}
    ensure_bool(isinstance(mmr, dict), "'physical.mm_rounding' must be a mapping.", PackingPreconditionError)
    return {
        "board_size_mm": phys.get("board_size_mm", list(DEFAULT_BOARD_SIZE_MM)),
        "padding_mm": phys.get("padding_mm", DEFAULT_PADDING_MM),
        "grid_divisions": phys.get("grid_divisions", DEFAULT_GRID_DIVISIONS),
        "boundary_epsilon": phys.get("boundary_epsilon", DEFAULT_BOUNDARY_EPSILON),
        "mm_round_mode": mmr.get("mode", DEFAULT_ROUND_MODE),
        "mm_round_step": mmr.get("step_mm", DEFAULT_ROUND_STEP_MM),
        "export_csv": cfg.get("export_csv", True),
        "export_svg": cfg.get("export_svg", True),
        "svg_include_grid": cfg.get("svg_include_grid", True),
        "svg_transparent_bg": cfg.get("svg_transparent_bg", True),
        "verbose": cfg.get("verbose", False),
    }


def tuplify(o):
    """Convert tuples to lists for JSON printing."""
    if isinstance(o, tuple):
        return [tuplify(v) for v in o]
    if isinstance(o, list):
        return [tuplify(v) for v in o]
    if isinstance(o, dict):
        return {k: tuplify(v) for k, v in o.items()}
    return o


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Weighted circle packing into a target circle (YAML config).")
    p.add_argument("--config", help="Path to YAML config file (e.g., config.yaml).")
    p.add_argument("--weights", nargs="+", type=float, help="Weights to pack (overrides config items).")
    p.add_argument("--random", type=int, metavar="N", help="Pack N random demo weights.")
    p.add_argument("--seed", type=int, default=None, help="Seed for --random.")
    p.add_argument("--show-enclosure", action="store_true", help="Append the target enclosure circle.")
    p.add_argument("--outdir", help="Directory for CSV/SVG outputs.")
    p.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    return p


def main(argv: Optional[Sequence[str]] = None):
    """
    Entry point for the circle-packing command-line interface.

    Parses command-line arguments, loads the optional YAML configuration, packs
    the weights, writes layout files (CSV and SVG) and prints a JSON summary to
    stdout that includes the circles, paths to generated files and run metadata.

    Returns:
        None.
    """
    args = build_parser().parse_args(argv)

    cfg: Dict[str, Any] = {}
    if args.config:
        try:
            with open(args.config, "r") as f:
                cfg = yaml.safe_load(f) or {}
        except Exception as e:
            print(json.dumps({"error": f"Failed to read config: {e}"}))
            return

    try:
        ensure_bool(isinstance(cfg, dict), "config root must be a mapping.", PackingPreconditionError)
        if args.weights:
            items = _normalize_items(args.weights)
        elif args.random is not None:
            items = _normalize_items(random_weights(args.random, args.seed))
        else:
            items = items_from_config(cfg)
        target_enclosure = cfg.get("target_enclosure", DEFAULT_TARGET_ENCLOSURE)
        ensure_bool(isinstance(target_enclosure, (list, tuple)),
                    f"target_enclosure must be [x, y, r], got {target_enclosure!r}", PackingPreconditionError)
        layout_cfg = layout_cfg_from_config(cfg)
    except Exception as e:
        print(json.dumps({"error": str(e)}))
        return

    result = circlify_layout(
        items=items,
        target_enclosure=tuple(target_enclosure),
        show_enclosure=bool(args.show_enclosure or cfg.get("show_enclosure", False)),
        outdir=args.outdir or str(cfg.get("visualization_outdir", DEFAULT_OUTDIR)),
        layout_cfg=layout_cfg,
    )

    print(json.dumps(tuplify(result), indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
