#!/usr/bin/env python3
"""
Supplier Template Engine - Main Entry Point.

Command-line access to the template store, the matcher, the extractor
and the annotation workflow. Inputs are upstream OCR output files (JSON
tokens/text or plain text); results are printed as JSON.

Usage:
    Command Line:
        python main.py templates --owner acc-1
        python main.py match --owner acc-1 --input scan-0042.json
        python main.py extract --owner acc-1 --input scan-0042.json --save
        python main.py batch --owner acc-1 --dir scans/ --recursive
        python main.py annotate --owner acc-1 --input scan-0042.json \\
            --annotations corrections.json --create-template
        python main.py show <template-id>
        python main.py delete <template-id> --owner acc-1

    Python:
        from main import run_extraction
        result = run_extraction("scan-0042.json", owner="acc-1")
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Dict, Any

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from src.utils.exceptions import TemplateEngineError
from src.utils.logger import set_level, setup_logger_from_config, get_logger


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Supplier Template Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    List templates:
        python main.py templates --owner acc-1

    Extract a document with its supplier's template:
        python main.py extract --owner acc-1 --input scan-0042.json

    Extract every OCR output file of a directory:
        python main.py batch --owner acc-1 --dir scans/

    Apply corrections and save them as the supplier's template:
        python main.py annotate --owner acc-1 --input scan-0042.json \\
            --annotations corrections.json --create-template
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (default: from configuration)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    templates = commands.add_parser("templates", help="List an account's templates")
    templates.add_argument("--owner", required=True, help="Account id")

    show = commands.add_parser("show", help="Print one template")
    show.add_argument("template_id", help="Template id")

    delete = commands.add_parser("delete", help="Delete a template (irreversible)")
    delete.add_argument("template_id", help="Template id")
    delete.add_argument("--owner", required=True, help="Account id")

    match = commands.add_parser("match", help="Find the template for a document")
    match.add_argument("--owner", required=True, help="Account id")
    match.add_argument("--input", "-i", required=True, help="OCR output file (.json or .txt)")

    extract = commands.add_parser("extract", help="Match and extract a document")
    extract.add_argument("--owner", required=True, help="Account id")
    extract.add_argument("--input", "-i", required=True, help="OCR output file (.json or .txt)")
    extract.add_argument("--template", default=None, help="Apply this template id")
    extract.add_argument(
        "--save",
        action="store_true",
        help="Store the extracted values on the document and count the template use"
    )

    batch = commands.add_parser("batch", help="Match and extract every OCR output file in a directory")
    batch.add_argument("--owner", required=True, help="Account id")
    batch.add_argument("--dir", "-d", required=True, help="Directory of OCR output files")
    batch.add_argument("--recursive", "-r", action="store_true", help="Include subdirectories")
    batch.add_argument(
        "--save",
        action="store_true",
        help="Store the extracted values on each document and count the template uses"
    )

    annotate = commands.add_parser("annotate", help="Apply corrections to a document")
    annotate.add_argument("--owner", required=True, help="Account id")
    annotate.add_argument("--input", "-i", required=True, help="OCR output file (.json or .txt)")
    annotate.add_argument(
        "--annotations", "-a",
        required=True,
        help='JSON file: {"values": {...}, "zones": [{"field", "box"}], "remove": [...]}'
    )
    annotate.add_argument("--template", default=None, help="Apply this template id first")
    annotate.add_argument(
        "--create-template",
        action="store_true",
        help="Save the zones as the supplier's template"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    logger = setup_logger_from_config()

    if args.debug:
        set_level("DEBUG")

    logger.debug(f"{config.get('project.name', 'invoice-zone-templates')} "
                 f"{config.get('project.version', '1.0.0')}")
    return config


def build_engine(db_path: Optional[str] = None):
    """Engine backed by the SQLite store."""
    from src.engine import TemplateEngine
    from src.templates import SQLiteTemplateStore

    return TemplateEngine(SQLiteTemplateStore(db_path))


def load_annotations(path: str) -> Dict[str, Any]:
    """
    Read a corrections file.

    Raises:
        CorruptedFileError: If the file is not a JSON object.
        DocumentNotFoundError: If the file does not exist.
    """
    from src.utils.exceptions import CorruptedFileError, DocumentNotFoundError

    annotation_path = Path(path)
    if not annotation_path.exists():
        raise DocumentNotFoundError(path)
    try:
        data = json.loads(annotation_path.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptedFileError(path, str(e))
    if not isinstance(data, dict):
        raise CorruptedFileError(path, "Expected a JSON object")
    return data


def apply_annotations(session, annotations: Dict[str, Any]) -> None:
    """
    Replay a corrections file through an annotation session.

    Values are set first so that drawn zones pick them up.
    """
    from src.geometry import BoundingBox

    for field_name, value in (annotations.get('values') or {}).items():
        session.set_value(field_name, value)

    for field_name in annotations.get('remove') or []:
        session.remove_zone(field_name)

    for entry in annotations.get('zones') or []:
        box = BoundingBox.from_dict(entry.get('box') or {})
        session.draw(entry.get('field'), (box.x, box.y), (box.right, box.bottom), page=box.page)
        session.commit()


async def extract_document(engine, owner: str, document, template_id: Optional[str] = None, save: bool = False):
    """Process one document; with `save`, store the values and count the template use."""
    result = await engine.process(owner, document, template_id=template_id)
    if save and result.report is not None:
        draft = await engine.open_draft(owner, result, document)
        await engine.annotations.save(draft)
        await engine.record_unreviewed(result.report)
    return result


async def run_batch(engine, owner: str, directory: str, recursive: bool = False, save: bool = False) -> Dict[str, Any]:
    """
    Extract every supported file of a directory.

    Unreadable files are reported in the summary rather than aborting the run.
    """
    from src.input_handler import InputHandler
    from src.matching import MatchOutcome

    files = []
    for loaded in InputHandler().load_batch(directory, recursive=recursive):
        entry = {'file': loaded.filepath, 'success': loaded.success, 'error': loaded.error}
        if loaded.success:
            result = await extract_document(engine, owner, loaded.document, save=save)
            entry['result'] = result.to_dict()
        files.append(entry)

    outcomes = [f['result']['match']['outcome'] for f in files if f['success']]
    return {
        'directory': directory,
        'files': files,
        'summary': {
            'total': len(files),
            'failed': sum(1 for f in files if not f['success']),
            **{outcome.value: outcomes.count(outcome.value) for outcome in MatchOutcome},
        },
    }


async def run_command(args: argparse.Namespace) -> Any:
    """Execute one subcommand and return its JSON-serializable result."""
    from src.annotator import AnnotationSession
    from src.input_handler import InputHandler

    engine = build_engine(args.db)
    try:
        if args.command == "templates":
            templates = await engine.store.list_templates(args.owner)
            return [t.to_dict() for t in templates]

        if args.command == "show":
            from src.utils.exceptions import TemplateNotFoundError
            template = await engine.store.get_template(args.template_id)
            if template is None:
                raise TemplateNotFoundError(args.template_id)
            return template.to_dict()

        if args.command == "delete":
            await engine.annotations.delete_template(args.template_id, args.owner)
            return {'deleted': args.template_id}

        if args.command == "batch":
            return await run_batch(engine, args.owner, args.dir, args.recursive, args.save)

        document = InputHandler().read(args.input)

        if args.command == "match":
            templates = await engine.store.list_templates(args.owner)
            return engine.matcher.match(document.full_text, templates, owner=args.owner).to_dict()

        if args.command == "extract":
            result = await extract_document(
                engine, args.owner, document, template_id=args.template, save=args.save
            )
            return result.to_dict()

        if args.command == "annotate":
            annotations = load_annotations(args.annotations)
            result = await engine.process(args.owner, document, template_id=args.template)
            session = AnnotationSession(await engine.open_draft(args.owner, result, document), strict=True)
            apply_annotations(session, annotations)
            saved = await engine.complete_review(
                session.draft, result.report, create_template=args.create_template
            )
            return saved.to_dict()

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await engine.store.close()


def run_extraction(
    input_path: str,
    owner: str,
    template_id: Optional[str] = None,
    db_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Match and extract one OCR output file.

    This is the programmatic entry point for one-shot extraction.

    Example:
        >>> result = run_extraction("scan-0042.json", owner="acc-1")
        >>> result['match']['outcome']
        'matched'
    """
    args = argparse.Namespace(
        command="extract",
        owner=owner,
        input=input_path,
        template=template_id,
        save=False,
        db=db_path,
    )
    return asyncio.run(run_command(args))


def main(argv=None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)

        result = asyncio.run(run_command(args))
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return 0

    except TemplateEngineError as e:
        get_logger(__name__).debug(f"Error details: {e.details}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
