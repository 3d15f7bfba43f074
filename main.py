#!/usr/bin/env python3
"""Educational visualization generator CLI."""

import argparse
import logging
import sys
from config.settings import Settings
from errors import GenerationError
from llm.factory import LLMProvider
from schemas.context import OptimizationGoal, Subject
from schemas.generation import GenerationOptions
from orchestrator import VisualizationOrchestrator


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate validated, interactive D3.js visualizations for science and math concepts"
    )
    parser.add_argument(
        "--prompt",
        "-p",
        type=str,
        required=True,
        help="Concept to visualize"
    )
    parser.add_argument(
        "--subject",
        "-s",
        type=str,
        choices=[s.value for s in Subject],
        default=Subject.PHYSICS.value,
        help="Subject area (default: physics)"
    )
    parser.add_argument(
        "--goal",
        "-g",
        type=str,
        choices=[g.value for g in OptimizationGoal],
        help="Cost/quality trade-off (default: from settings)"
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Stream code to stdout while it is validated"
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=[p.value for p in LLMProvider],
        help="Fallback provider when a tier's own provider is unavailable"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Create settings
    settings_kwargs = {"verbose": args.verbose}
    if args.provider:
        settings_kwargs["default_provider"] = LLMProvider(args.provider)
    settings = Settings(**settings_kwargs)

    options = GenerationOptions(
        subject=Subject(args.subject),
        optimization_goal=OptimizationGoal(args.goal) if args.goal else None,
        streaming=args.stream
    )

    try:
        orchestrator = VisualizationOrchestrator(settings=settings)

        on_fragment = None
        if args.stream:
            def on_fragment(fragment: str):
                print(fragment, end="", flush=True)

        result = orchestrator.generate_visualization(args.prompt, options, on_fragment=on_fragment)
    except GenerationError as e:
        print(f"Error generating visualization: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    if args.stream:
        print("\n")
    else:
        print("\n" + "="*60)
        print("GENERATED CODE")
        print("="*60 + "\n")
        print(result.code)
        print()

    print("="*60)
    print(f"VALID: {result.validation.is_valid}")
    print(f"MODEL TIER: {result.metadata.model_tier} ({result.metadata.routing_reason})")
    print(f"COST: ${result.total_cost:.4f}")
    if result.metadata.concepts_used:
        print(f"CONCEPTS: {', '.join(result.metadata.concepts_used)}")
    if result.validation.pedagogical_quality is not None:
        print(f"PEDAGOGICAL QUALITY: {result.validation.pedagogical_quality:.2f}")
    if result.validation.scientific_accuracy is not None:
        print(f"SCIENTIFIC ACCURACY: {result.validation.scientific_accuracy:.2f}")
    for line in result.validation.feedback():
        print(f"  - {line}")
    for suggestion in result.validation.suggestions:
        print(f"  * {suggestion}")

    if not result.validation.is_valid:
        sys.exit(2)


if __name__ == "__main__":
    main()
