#!/usr/bin/env python3
"""
NutriGuard Safety Engine – Demo Script
========================================
Runs conflict detection, ingredient screening and content oversight on
sample profiles and texts and prints formatted results.

Usage:
    python demo/run_demo.py
"""

import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from dotenv import load_dotenv
load_dotenv()

from core.router import NutriGuardRouter


DEMO_PROFILES = [
    {
        "label": "Anticoagulant + NSAID",
        "subject_id": "demo-warfarin",
        "allergies": [],
        "medications": [
            {"id": "m1", "genericName": "warfarin", "isActive": True},
            {"id": "m2", "genericName": "aspirin", "isActive": True},
        ],
        "ingredients": ["spinach", "olive oil", "lemon"],
    },
    {
        "label": "Insulin + Sulfonylurea",
        "subject_id": "demo-diabetes",
        "allergies": [],
        "medications": [
            {"id": "m1", "genericName": "insulin glargine", "indication": "type 2 diabetes"},
            {"id": "m2", "genericName": "glipizide", "indication": "type 2 diabetes"},
        ],
        "ingredients": ["brown rice", "chicken"],
    },
    {
        "label": "Anaphylactic Shellfish Allergy",
        "subject_id": "demo-shellfish",
        "allergies": [{"id": "a1", "allergen": "shellfish", "severity": "anaphylactic"}],
        "medications": [],
        "ingredients": ["shellfish stock", "garlic"],
    },
    {
        "label": "Penicillin Allergy + Amoxicillin",
        "subject_id": "demo-penicillin",
        "allergies": [{"id": "a1", "allergen": "penicillin", "severity": "severe"}],
        "medications": [{"id": "m1", "genericName": "amoxicillin"}],
        "ingredients": ["oats"],
    },
]

DEMO_TEXTS = [
    "A balanced plate is half vegetables, a quarter protein and a quarter whole grains.",
    "You might have a thyroid condition based on these symptoms.",
    "I recommend you start this medication therapy at a lower dose.",
    "Go to the emergency room now.",
]


def main():
    print("\n" + "=" * 60)
    print("  🛡️  NutriGuard Safety Engine – Demo")
    print("=" * 60)

    router = NutriGuardRouter()

    for profile in DEMO_PROFILES:
        print(f"\n{'─' * 60}")
        print(f"  📋 Profile: {profile['label']}")
        print(f"{'─' * 60}")

        try:
            result = router.check_profile(
                profile["subject_id"], profile["allergies"], profile["medications"]
            )
            summary = result["conflict_summary"]
            print(f"  Gate:         {result['gate'].upper()}")
            print(f"  Safety score: {summary['safety_score']}/100")
            for c in summary["conflicts"][:3]:
                print(f"    • [{c['severity']}] {c['description']}")

            verdict = router.check_ingredients(
                profile["allergies"], profile["medications"], profile["ingredients"]
            )
            print(f"  Ingredients:  {', '.join(profile['ingredients'])}")
            print(f"  Verdict:      {verdict['action_required'].upper()}")
            for w in verdict["emergency_warnings"]:
                print(f"    • {w}")

        except Exception as e:
            print(f"  ❌ Error: {e}")

    print(f"\n{'─' * 60}")
    print("  🔎 Content oversight")
    print(f"{'─' * 60}")
    for text in DEMO_TEXTS:
        alert = router.scanner.analyze(text)
        if alert is None:
            print(f"  [none    ] {text[:60]}")
        else:
            block = "  (auto-block)" if alert.auto_block else ""
            print(f"  [{alert.severity.value:<8}] {text[:60]}{block}")

    print(f"\n{'=' * 60}")
    print("  ⚕️  All outputs require review by qualified professionals.")
    print(f"{'=' * 60}\n")


if __name__ == "__main__":
    main()
