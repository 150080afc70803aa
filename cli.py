"""Command-line driver for the staged assessment pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from agent.controller import PipelineController, PipelineStage, PipelineState, PipelineTransitionError
from config.settings import settings
from detection.pattern_classifier import highlight_plain
from reasoning.transports import ConfigurationError


def _summary(state: PipelineState) -> str:
    if state.stage == PipelineStage.ERRORED and state.assessment is None:
        return f"Analysis failed: {state.error}"

    a = state.assessment
    if a is None:
        return "No assessment yet."
    lines = [
        f"[{state.assessment_stage.value}] {a.threatLevel.value} risk ({a.riskScore}/100) - {a.incidentType}",
        f"Immediate action: {a.immediateAction}",
    ]
    lines += [f"  ! {flag}" for flag in a.redFlags]
    if state.stage == PipelineStage.ERRORED:
        lines.append(f"Advanced analysis failed: {state.error} (showing the basic result)")
    return "\n".join(lines)


def run_once(text: str, *, advanced: bool = False, output: str = "summary") -> str:
    controller = PipelineController(offer_upgrade=advanced)
    state = controller.analyze(text)
    if advanced and state.stage == PipelineStage.AWAITING_UPGRADE:
        state = controller.upgrade()

    if output == "json":
        if state.assessment is None:
            return json.dumps({"error": state.error}, ensure_ascii=False)
        return json.dumps(state.assessment.to_wire(), ensure_ascii=False, indent=2)
    if output == "report":
        if state.assessment is None:
            return f"Analysis failed: {state.error}"
        return controller.report()
    return _summary(state)


def run_interactive() -> None:
    controller = PipelineController(offer_upgrade=True)
    print("Paste a suspicious message (single line). Commands: advanced, report, new, exit.\n")

    while True:
        raw = input("> ").strip()
        command = raw.lower()
        if command in {"exit", "quit"}:
            break
        if not raw:
            continue

        if command == "new":
            controller.reset()
            print("Started a new analysis.\n")
            continue
        if command == "advanced":
            if controller.state.upgrade_offered or controller.state.stage == PipelineStage.ERRORED:
                try:
                    print(_summary(controller.upgrade()) + "\n")
                except (PipelineTransitionError, ConfigurationError) as e:
                    print(f"{e}\n")
            else:
                print("Run a basic analysis first.\n")
            continue
        if command == "report":
            try:
                print(controller.report())
            except PipelineTransitionError as e:
                print(f"{e}\n")
            continue

        if controller.state.stage != PipelineStage.IDLE:
            controller.reset()
        print(highlight_plain(raw, controller.preview(raw)) + "\n")
        print(_summary(controller.analyze(raw)))
        if controller.state.upgrade_offered:
            print("Type 'advanced' for a deeper, research-based analysis.")
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scam-assess")
    parser.add_argument("--text", help="Analyze a single message and exit. Use '-' to read stdin.")
    parser.add_argument("--advanced", action="store_true", help="Also run the advanced analysis.")
    parser.add_argument(
        "--output",
        choices=["summary", "json", "report"],
        default="summary",
        help="What to print for --text runs.",
    )
    parser.add_argument("--highlight", action="store_true", help="Only print the offline risk highlights.")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)

    text = args.text
    if text == "-":
        text = sys.stdin.read()

    if text is None:
        run_interactive()
        return 0
    if not text.strip():
        print("Nothing to analyze.", file=sys.stderr)
        return 2
    if args.highlight:
        print(highlight_plain(text, PipelineController().preview(text)))
        return 0

    try:
        print(run_once(text, advanced=args.advanced, output=args.output))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
