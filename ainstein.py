"""
AINSTEIN - Command-line entry point for querying ArchiMate models
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ainstein_config import LOG_FORMAT, LOG_LEVEL, MODELS_DIR, TRAVERSAL
from archimate_core import ModelDirectoryNotFoundError
from model_repository import ModelRepository
from model_updater import ModelUpdateError, add_element, add_relationship
from org_analyzer import OrganizationalAnalyzer
from response_assembler import ResponseAssembler
from relationship_traversal import RelationshipTraversal

EXIT_COMMANDS = ("exit", "quit")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ainstein",
        description="Ask questions about ArchiMate (.archimate) enterprise architecture models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ainstein ask "how many business actors"
  ainstein ask "what is the impact of the CRM System"
  ainstein impact id-1234 --depth 2 --plot impact.png
  ainstein export-graphml models.graphml
  ainstein chat
""",
    )
    parser.add_argument("--models-dir", type=Path, default=None, metavar="DIR",
                        help=f"Directory scanned for .archimate files (default: {MODELS_DIR})")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ask_parser = subparsers.add_parser("ask", help="Answer one question")
    ask_parser.add_argument("question", nargs="+", help="Question text")

    subparsers.add_parser("summary", help="Per-model element/relationship counts and data issues")
    subparsers.add_parser("counts", help="Strict element counts as JSON")
    subparsers.add_parser("actors", help="Business actors partitioned by organizational role")

    impact_parser = subparsers.add_parser("impact", help="Elements impacted by a change to one element")
    impact_parser.add_argument("element_id", help="Element id")
    impact_parser.add_argument("--depth", type=int, default=TRAVERSAL["default_max_depth"],
                               help="Maximum hop distance (default: %(default)s)")
    impact_parser.add_argument("--plot", type=Path, metavar="PNG", help="Also render the impact set to a PNG file")

    export_parser = subparsers.add_parser("export-graphml", help="Write the model graph as GraphML")
    export_parser.add_argument("path", type=Path)

    subparsers.add_parser("chat", help="Interactive question loop")

    add_el_parser = subparsers.add_parser("add-element", help="Add an element to a model file")
    add_el_parser.add_argument("file", type=Path)
    add_el_parser.add_argument("type", help="Element type, e.g. BusinessActor")
    add_el_parser.add_argument("name")
    add_el_parser.add_argument("--documentation")
    add_el_parser.add_argument("--folder-type", help="Target folder type (defaults to the type's layer)")

    add_rel_parser = subparsers.add_parser("add-relationship", help="Add a relationship to a model file")
    add_rel_parser.add_argument("file", type=Path)
    add_rel_parser.add_argument("type", help="Relationship type, e.g. Composition")
    add_rel_parser.add_argument("source_id")
    add_rel_parser.add_argument("target_id")
    add_rel_parser.add_argument("--name")

    return parser


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_ask(repository, args) -> int:
    print(ResponseAssembler(repository).generate_response(" ".join(args.question)))
    return 0


def cmd_summary(repository, args) -> int:
    for name, summary in repository.get_model_summary().items():
        print(f"📦 {name}: {summary['elements']} elements, {summary['relationships']} relationships, "
              f"{summary['views']} views")
        if summary["dangling_relationships"]:
            print(f"   ⚠️ {summary['dangling_relationships']} dangling relationships")
    issues = repository.validate_model_data()
    for issue in issues:
        print(f"⚠️ {issue}")
    if not issues:
        print("✅ Model data looks complete")
    return 0


def cmd_counts(repository, args) -> int:
    print(json.dumps(repository.get_element_counts().as_dict(), indent=2))
    return 0


def cmd_actors(repository, args) -> int:
    analysis = OrganizationalAnalyzer(repository).analyze()
    sections = [
        ("Internal actors", analysis.internal_actors),
        ("External actors", analysis.external_actors),
        ("Departments", analysis.departments),
    ]
    for title, actors in sections:
        print(f"{title} ({len(actors)}):")
        for actor in actors:
            print(f"  - {actor.name}")
    print(f"Total: {analysis.total}")
    return 0


def cmd_impact(repository, args) -> int:
    element = repository.get_element(args.element_id)
    if element is None:
        print(f"❌ Element not found: {args.element_id}")
        return 1

    traversal = RelationshipTraversal(repository)
    levels = traversal.get_impact_levels(element.id, args.depth)
    print(f"🔍 Impact of {element.name} (depth {args.depth}): {len(levels)} elements")
    for node_id, depth in levels.items():
        impacted = repository.get_element(node_id)
        print(f"  [{depth}] {impacted.name} ({node_id})")

    if args.plot:
        # Imported here so the other commands never pay for matplotlib
        from impact_visualizer import render_impact
        path = render_impact(repository, element.id, args.plot, args.depth)
        print(f"✅ Impact plot written to {path}")
    return 0


def cmd_export_graphml(repository, args) -> int:
    path = repository.export_graphml(args.path)
    print(f"✅ GraphML exported to {path}")
    return 0


def cmd_chat(repository, args) -> int:
    assembler = ResponseAssembler(repository)
    print("💬 Ask about the loaded models ('exit' to quit)")
    while True:
        try:
            question = input("> ").strip()
        except EOFError:
            break
        if question.lower() in EXIT_COMMANDS:
            break
        if question:
            print(assembler.generate_response(question))
            print()
    return 0


def cmd_add_element(args) -> int:
    new_id = add_element(args.file, args.type, args.name, args.documentation, args.folder_type)
    print(f"✅ Added {args.type} {args.name!r} with id {new_id}")
    return 0


def cmd_add_relationship(args) -> int:
    new_id = add_relationship(args.file, args.type, args.source_id, args.target_id, args.name)
    print(f"✅ Added {args.type} relationship with id {new_id}")
    return 0


REPOSITORY_COMMANDS = {
    "ask": cmd_ask,
    "summary": cmd_summary,
    "counts": cmd_counts,
    "actors": cmd_actors,
    "impact": cmd_impact,
    "export-graphml": cmd_export_graphml,
    "chat": cmd_chat,
}

FILE_COMMANDS = {
    "add-element": cmd_add_element,
    "add-relationship": cmd_add_relationship,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    if not args.command:
        parser.print_help()
        return 0

    if args.command in FILE_COMMANDS:
        try:
            return FILE_COMMANDS[args.command](args)
        except ModelUpdateError as e:
            print(f"❌ {e}")
            return 1

    repository = ModelRepository(args.models_dir)
    try:
        repository.load_all()
    except ModelDirectoryNotFoundError as e:
        print(f"❌ {e}")
        return 1
    print(f"✅ Loaded {len(repository.models)} models from {repository.models_dir}", file=sys.stderr)

    return REPOSITORY_COMMANDS[args.command](repository, args)


if __name__ == "__main__":
    sys.exit(main())
