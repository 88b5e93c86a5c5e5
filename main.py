#!/usr/bin/env python3
"""
NutriGuard Safety Engine – Main Entrypoint
============================================
Usage:
    python main.py scan "Go to the emergency room now"
    python main.py check --file data/samples/profile_warfarin.json
    python main.py ingredients --file data/samples/profile_shellfish.json shrimp rice

Importable convenience function:
    from main import run_conflict_check
    result = run_conflict_check(profile_dict)
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from dotenv import load_dotenv
load_dotenv(override=True)

from core.logging_utils import setup_logging
from core.router import NutriGuardRouter

# Module-level singleton router (lazy-initialised on first call)
_router: NutriGuardRouter | None = None

COLORS = {
    "block": "\033[91m", "critical": "\033[91m",
    "review": "\033[93m", "warn": "\033[93m", "high": "\033[93m",
    "medium": "\033[33m",
    "allow": "\033[92m", "proceed": "\033[92m", "low": "\033[94m",
}
RESET = "\033[0m"


def _get_router(config_path: str | None = None) -> NutriGuardRouter:
    global _router
    if _router is None:
        _router = NutriGuardRouter(config_path=config_path)
    return _router


def run_conflict_check(profile: dict, config_path: str | None = None) -> dict:
    """
    Run conflict detection on a profile dict and return the gated result.

    Parameters
    ----------
    profile : dict
        Keys: ``subject_id``, ``allergies``, ``medications`` and optionally
        ``proposed_changes`` (records in camelCase or snake_case).
    config_path : str, optional
        Path to a custom ``engine_config.yaml``.
    """
    router = _get_router(config_path)
    return router.check_profile(
        profile.get("subject_id", profile.get("userId", "anonymous")),
        profile.get("allergies", []),
        profile.get("medications", []),
        profile.get("proposed_changes"),
    )


def _load_profile(path: str) -> dict:
    with open(path) as f:
        return json.load(f)


def _paint(label: str) -> str:
    return f"{COLORS.get(str(label).lower(), '')}{str(label).upper()}{RESET}"


# ── Presentation helpers ────────────────────────────────────────────────────

def print_profile_result(result: dict, verbose: bool = False):
    """Pretty-print a gated conflict-detection result to stdout."""
    summary = result.get("conflict_summary", {})

    print(f"\n{'='*60}")
    print(f"  NUTRIGUARD CONFLICT CHECK  |  ID: {result.get('id', '?')}")
    print(f"{'='*60}")
    print(f"  Subject:      {result.get('subject_id', '?')}")
    print(f"  Gate:         {_paint(result.get('gate', '?'))}")
    print(f"  Safety score: {summary.get('safety_score', '?')}/100")
    print(f"  Review:       {'required' if summary.get('requires_clinical_review') else 'not required'}")
    print(f"{'─'*60}")

    conflicts = summary.get("conflicts", [])
    if conflicts:
        print(f"  ⚠️  CONFLICTS ({len(conflicts)}):")
        for c in conflicts:
            print(f"     • [{_paint(c['severity'])}] {c['type']}: {c['description']}")
    else:
        print("  No conflicts detected.")

    if summary.get("detection_failed"):
        print("\n  ❌ Detection failed – treat this profile as unsafe until reviewed.")

    anomalies = result.get("result", {}).get("anomalies", [])
    if anomalies:
        print(f"\n  📋 SKIPPED RECORDS:")
        for a in anomalies:
            print(f"     • {a}")

    if result.get("emergency_notice"):
        print(f"\n  🚑 {result['emergency_notice']}")

    if verbose:
        print(f"\n  📊 Full result JSON:")
        print(json.dumps(result.get("result", {}), indent=2, default=str))

    print(f"\n{'─'*60}")
    print(f"  ⚕️  {result.get('disclaimer', '')}")
    print(f"{'='*60}\n")


def print_ingredient_result(verdict: dict, verbose: bool = False):
    """Pretty-print an emergency ingredient verdict."""
    print(f"\n{'='*60}")
    print(f"  NUTRIGUARD INGREDIENT CHECK  |  {_paint(verdict.get('action_required', '?'))}")
    print(f"{'='*60}")
    print(f"  Ingredients: {', '.join(verdict.get('ingredients_checked', []))}")
    print(f"  {verdict.get('user_message', '')}")
    for w in verdict.get("emergency_warnings", []):
        print(f"     • {w}")
    if verdict.get("emergency_notice"):
        print(f"\n  🚑 {verdict['emergency_notice']}")
    if verbose:
        print(json.dumps(verdict, indent=2, default=str))
    print(f"{'='*60}\n")


def print_scan_result(alerts: list, text: str, verbose: bool = False):
    """Pretty-print clinical oversight alerts for a piece of text."""
    print(f"\n{'='*60}")
    print(f"  NUTRIGUARD CONTENT SCAN")
    print(f"{'='*60}")
    print(f"  Text: {text[:80]}{'...' if len(text) > 80 else ''}")
    if not alerts:
        print("  No clinical content detected.")
    for alert in alerts:
        print(f"  Severity:   {_paint(alert.severity.value)}  ({alert.type.value})")
        print(f"  Confidence: {alert.confidence_score}")
        print(f"  Review:     {alert.requires_review}   Auto-block: {alert.auto_block}")
        print(f"  Patterns:   {', '.join(alert.detected_patterns)}")
        if verbose:
            print(json.dumps(alert.model_dump(mode="json"), indent=2))
    print(f"{'='*60}\n")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="NutriGuard Safety Engine")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--config", "-c", help="Path to engine config YAML")
    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="Classify text for clinical content")
    scan.add_argument("text", help="Text to scan")

    check = sub.add_parser("check", help="Detect conflicts in a profile JSON file")
    check.add_argument("--file", "-f", required=True, help="Profile JSON file")

    ingredients = sub.add_parser("ingredients", help="Emergency screen for ingredients")
    ingredients.add_argument("--file", "-f", required=True, help="Profile JSON file")
    ingredients.add_argument("items", nargs="+", help="Proposed ingredients")

    args = parser.parse_args(argv)

    setup_logging(level=os.environ.get("LOG_LEVEL", "WARNING" if not args.verbose else "INFO"))

    if args.command is None:
        parser.print_help()
        return 0

    router = _get_router(args.config)

    if args.command == "scan":
        alerts = router.scanner.analyze_structured(args.text)
        print_scan_result(alerts, args.text, verbose=args.verbose)
        return 2 if any(a.auto_block for a in alerts) else 0

    profile = _load_profile(args.file)

    if args.command == "check":
        result = run_conflict_check(profile, config_path=args.config)
        print_profile_result(result, verbose=args.verbose)
        return 2 if result["gate"] == "block" else 0

    verdict = router.check_ingredients(
        profile.get("allergies", []), profile.get("medications", []), args.items
    )
    print_ingredient_result(verdict, verbose=args.verbose)
    return 2 if verdict["action_required"] == "block" else 0


if __name__ == "__main__":
    sys.exit(main())
