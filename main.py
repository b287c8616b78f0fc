import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from atomframe import (
    build_frame_from_mapping,
    describe_atom,
    explain_atom,
    load_config,
    validate_atoms,
)


logger = logging.getLogger("atomframe.main")


def _add_log_level_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for this launcher.",
    )


def _add_scene_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("scene", help="Path to a scene JSON file.")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional pipeline config JSON (observation, threatWeights, threatParams).",
    )
    parser.add_argument(
        "--no-emotion",
        action="store_true",
        help="Stop after the threat stack (skip appraisal/emotion atoms).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="atomframe entrypoint: build a per-tick atom frame, explain or describe atoms.",
    )
    _add_log_level_arg(parser)

    sub = parser.add_subparsers(dest="mode")

    frame = sub.add_parser("frame", help="Build the resolved frame for one scene.")
    _add_log_level_arg(frame)
    _add_scene_args(frame)
    frame.add_argument(
        "--panels-only",
        action="store_true",
        help="Print only the summary panels, not the full atom list.",
    )
    frame.add_argument(
        "--validate",
        action="store_true",
        help="Attach a validation report for the resolved atoms.",
    )

    explain = sub.add_parser("explain", help="Print the provenance tree of one atom.")
    _add_log_level_arg(explain)
    _add_scene_args(explain)
    explain.add_argument("atom_id", help="Atom id to explain, e.g. threat:final:A.")
    explain.add_argument(
        "--depth",
        type=int,
        default=6,
        help="Maximum depth of the provenance tree.",
    )

    describe = sub.add_parser("describe", help="Print the catalog entry for an atom id.")
    _add_log_level_arg(describe)
    describe.add_argument("atom_id", help="Atom id to describe.")

    return parser


def _load_scene(path: str) -> Dict[str, Any]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Scene file must hold a JSON object: {path}")
    return raw


def _run(parsed: argparse.Namespace) -> Dict[str, Any]:
    mode = parsed.mode

    if mode == "describe":
        return describe_atom(str(parsed.atom_id))

    if mode not in ("frame", "explain"):
        raise ValueError(f"Unknown mode: {mode}")

    if not getattr(parsed, "scene", None):
        raise ValueError("A scene file is required")

    config = load_config(parsed.config)
    if parsed.no_emotion:
        config = config.merged({"includeEmotion": False})
    frame = build_frame_from_mapping(_load_scene(str(parsed.scene)), config)

    if mode == "explain":
        return explain_atom(frame, str(parsed.atom_id), max_depth=int(parsed.depth))

    if parsed.panels_only:
        result: Dict[str, Any] = {"agentId": frame.agent_id, "tick": frame.tick, "panels": frame.panels}
    else:
        result = frame.to_dict()
    result["scoreboard"] = frame.scoreboard()
    if parsed.validate:
        result["validation"] = validate_atoms(frame.atoms).to_dict()
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    parsed = parser.parse_args(argv)

    if parsed.mode is None:
        print(parser.format_help())
        return 2

    logging.basicConfig(
        level=getattr(logging, str(parsed.log_level)),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        result = _run(parsed)
    except Exception as exc:
        logger.exception("atomframe run failed: %s", exc)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
