#!/usr/bin/env python3
"""
Interpret a shared-expense message from the command line.

Usage:
    python scripts/analyze_text.py "Rodízio de pizza. R$ 120,00 para 4 pessoas."
    python scripts/analyze_text.py --region RS "Bah, churrasco com a gurizada, 300 pila"
    python scripts/analyze_text.py --json "Happy hour, conta de R$ 250,00"
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from racha.config.engine_config import EngineConfig
from racha.pipelines.expense_nlp import ExpenseNLPProcessor
from racha.utils.logger import log_interpretation


def print_report(result, regional_lines):
    ctx = result.cultural_context

    print("\n" + "=" * 70)
    print(f"📝 TEXT: {result.original_text}")
    print("=" * 70)

    print(f"\n🎯 Scenario:       {ctx.scenario.value}")
    print(f"   Region:         {ctx.region.display_name}")
    print(f"   Formality:      {ctx.formality_level.value}")
    print(f"   Time of day:    {ctx.time_of_day.value}")
    print(f"   Group type:     {ctx.group_type.value}")
    print(f"   Dynamics:       {ctx.social_dynamics.value}")
    print(f"   Payment hint:   {ctx.payment_method_hint.value}")
    print(f"   Context conf.:  {ctx.confidence:.2f}")

    print(f"\n👥 Participants ({len(result.participants)}):")
    if result.participants:
        for p in result.participants:
            print(f"   ✓ {p.name} [{p.type.value}] x{p.count} ({p.confidence:.2f})")
    else:
        print("   ✗ none found")

    print(f"\n💰 Amounts ({len(result.amounts)}):")
    if result.amounts:
        for a in result.amounts:
            print(f"   ✓ R$ {a.value:.2f} [{a.type.value}] {a.description} ({a.confidence:.2f})")
    else:
        print("   ✗ none found")
    print(f"   Total: R$ {result.total_amount:.2f}")

    print(f"\n🔀 Splitting method: {result.splitting_method.value}")
    print(f"   Overall confidence: {result.confidence:.2f}")

    if regional_lines:
        print("\n🗺️  Regional terms:")
        for line in regional_lines:
            print(f"   {line}")

    if result.suggestions:
        print("\n💡 Suggestions:")
        for s in result.suggestions:
            print(f"   {s}")

    print(f"\n⏱️  {result.processing_time_ms:.2f} ms")


def main():
    parser = argparse.ArgumentParser(
        description="Interpret a Brazilian Portuguese shared-expense message",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/analyze_text.py "Rodízio de pizza. R$ 120,00 para 4 pessoas. Cada um paga igual."
  python scripts/analyze_text.py --region sao_paulo "Happy hour com a galera, 250 conto"
  python scripts/analyze_text.py --json --log "Vamos fazer uma vaquinha de 200 reais"
        """,
    )
    parser.add_argument("text", help="Message to interpret")
    parser.add_argument("--region", help="Declared region (value, display name or state code)")
    parser.add_argument("--json", action="store_true", help="Print the interpretation as JSON")
    parser.add_argument("--log", action="store_true", help="Append the interpretation to the CSV log")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = EngineConfig.from_env()
        processor = ExpenseNLPProcessor(config=config)
    except (ValueError, FileNotFoundError) as e:
        print(f"❌ Could not start engine: {e}")
        return 1

    result = processor.process(args.text, args.region)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_report(result, processor.regional.suggestions(result.regional_variations))

    if args.log:
        log_interpretation(result, config.log_file)
        if not args.json:
            print(f"\n✓ Logged to {config.log_file}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
