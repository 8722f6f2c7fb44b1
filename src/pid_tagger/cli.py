#!/usr/bin/env python3
"""
Command line interface for PID Tagger.

Usage:
    pid-tagger extract drawing.pdf --project drawing-project.json --excel tags.xlsx
    pid-tagger export drawing-project.json tags.xlsx
    pid-tagger autolink drawing-project.json --distance 40
"""

import argparse
import sys
from pathlib import Path

from .client import PidTagger
from .services.export import TagSheetExporter
from .services.extraction import ExtractionProgress
from .services.tag_graph import project_file_name
from .shared.config import get_settings, load_extraction_settings
from .shared.exceptions import PidTaggerError


def _print_progress(progress: ExtractionProgress) -> None:
    print(f"  📄 Page {progress.current}/{progress.total}", end="\r", flush=True)


def extract_command(args):
    """Extract tags from a PDF and save the project and/or Excel export"""
    pdf_path = Path(args.pdf_path)
    print(f"🚀 Extracting tags from {pdf_path}")

    extraction_settings = load_extraction_settings(args.settings) if args.settings else None
    tagger = PidTagger(extraction_settings=extraction_settings)
    graph, result = tagger.extract_pdf(pdf_path, on_progress=_print_progress)
    print()

    summary = result.get_summary()
    print(f"✅ Extracted {summary['tag_count']} tags and {summary['raw_text_count']} text items "
          f"from {summary['page_count']} page(s)")
    for category, count in summary['tags_by_category'].items():
        print(f"  - {category}: {count}")
    for warning in result.warnings:
        print(f"⚠️ {warning}")

    if args.auto_link:
        created = tagger.auto_link(graph)
        print(f"🔗 Auto-linked {created} description(s)")

    project_path = args.project or (Path(get_settings().output_dir) / project_file_name(pdf_path.name))
    saved = tagger.save_project(graph, project_path, pdf_file_name=pdf_path.name)
    print(f"💾 Project saved: {saved}")

    if args.excel:
        exported = tagger.export_excel(graph, args.excel)
        print(f"📊 Excel export saved: {exported}")

    return 0


def export_command(args):
    """Re-export a saved project to Excel"""
    tagger = PidTagger()
    graph = tagger.load_project(args.project_path)
    exported = tagger.export_excel(graph, args.output_path)
    print(f"📊 Exported {len(graph.tags)} tags to {exported}")

    if args.csv_dir:
        tags_file, relationships_file = TagSheetExporter(graph).generate_csv_files(args.csv_dir)
        print(f"📋 CSV files: {tags_file}, {relationships_file}")

    return 0


def autolink_command(args):
    """Link nearby raw text to instruments in a saved project"""
    tagger = PidTagger()
    graph = tagger.load_project(args.project_path)
    created = tagger.auto_link(graph, distance=args.distance)

    if created == 0:
        print("ℹ️ No new descriptions found to link.")
    else:
        print(f"🔗 Created {created} new description link(s)")

    tagger.save_project(graph, args.project_path)
    print(f"💾 Project saved: {args.project_path}")
    return 0


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog='pid-tagger',
        description='PID Tagger: extract and curate equipment, line and instrument tags from P&ID PDFs'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    extract_parser = subparsers.add_parser('extract', help='Extract tags from a PDF')
    extract_parser.add_argument('pdf_path', help='Path to the P&ID PDF')
    extract_parser.add_argument('--settings', help='JSON file with patterns and tolerances')
    extract_parser.add_argument('--project', help='Project file to write (default: <output_dir>/<pdf>-project.json)')
    extract_parser.add_argument('--excel', help='Also write an Excel export to this path')
    extract_parser.add_argument('--auto-link', action='store_true', help='Auto-link descriptions after extraction')
    extract_parser.set_defaults(func=extract_command)

    export_parser = subparsers.add_parser('export', help='Export a saved project to Excel')
    export_parser.add_argument('project_path', help='Project JSON file')
    export_parser.add_argument('output_path', help='Destination .xlsx file')
    export_parser.add_argument('--csv-dir', help='Also write tags.csv and relationships.csv here')
    export_parser.set_defaults(func=export_command)

    autolink_parser = subparsers.add_parser('autolink', help='Auto-link descriptions in a saved project')
    autolink_parser.add_argument('project_path', help='Project JSON file (updated in place)')
    autolink_parser.add_argument('--distance', type=float, default=None,
                                 help='Max center distance (default: Instrument autoLinkDistance)')
    autolink_parser.set_defaults(func=autolink_command)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        print("\n💡 Quick start: pid-tagger extract drawing.pdf --excel P&ID_Tag_Export.xlsx")
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n⚠️ Operation cancelled by user")
        return 1
    except PidTaggerError as e:
        print(f"❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
