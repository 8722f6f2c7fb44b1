"""
Spreadsheet export of a tag graph: per-category lists as Excel sheets, plus
flat CSV dumps of tags and relationships.
"""

import csv
import os
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import networkx as nx
import pandas as pd

from ...shared.exceptions import StorageError
from ...shared.infrastructure.monitoring.logger import get_logger
from ...shared.models.tags import Category, RelationshipKind, Tag
from ..tag_graph.graph import TagGraph


EQUIPMENT_COLUMNS = ['Tag', 'Page', 'Drawing Number', 'Instruments Installed', 'Related', 'Note & Hold']
LINE_COLUMNS = ['Tag', 'Page', 'Drawing Number', 'From', 'To', 'Instruments Installed', 'Related', 'Note & Hold']
INSTRUMENT_COLUMNS = ['Tag', 'Page', 'Drawing Number', 'Installed On', 'Related', 'Note & Hold']
NOTE_COLUMNS = ['Tag', 'Page', 'Drawing Number', 'Referenced By']

SHEET_NAMES = {
    Category.EQUIPMENT: 'Equipment List',
    Category.LINE: 'Line List',
    Category.INSTRUMENT: 'Instrument List',
    Category.NOTES_AND_HOLDS: 'Notes & Holds',
}


class TagSheetExporter:
    """Builds export tables from a tag graph by walking its relationships."""

    def __init__(self, graph: TagGraph):
        self.logger = get_logger(__name__)
        self.graph = graph
        self._view: nx.MultiDiGraph = graph.to_networkx()

    def refresh(self) -> None:
        """Rebuild the relationship view after the graph changed."""
        self._view = self.graph.to_networkx()

    # === Relationship traversal ===

    def _incoming(self, tag_id: str, kind: RelationshipKind) -> str:
        texts = [
            self.graph.resolve_tag_text(source)
            for source, _, data in self._view.in_edges(tag_id, data=True)
            if data['type'] is kind
        ]
        return ', '.join(text for text in texts if text)

    def _outgoing(self, tag_id: str, kind: RelationshipKind) -> str:
        texts = [
            self.graph.resolve_tag_text(target)
            for _, target, data in self._view.out_edges(tag_id, data=True)
            if data['type'] is kind
        ]
        return ', '.join(text for text in texts if text)

    def _related(self, tag_id: str) -> str:
        """Annotation texts attached to a tag."""
        texts = [
            self._view.nodes[target]['text']
            for _, target, data in self._view.out_edges(tag_id, data=True)
            if data['type'] is RelationshipKind.ANNOTATION
        ]
        return ' | '.join(text for text in texts if text)

    def _common(self, tag: Tag) -> Dict[str, object]:
        return {
            'Tag': tag.text,
            'Page': tag.page,
            'Drawing Number': self.graph.drawing_number_for_page(tag.page),
        }

    # === Sheets ===

    def equipment_rows(self) -> pd.DataFrame:
        rows = []
        for tag in self.graph.tags_by_category(Category.EQUIPMENT):
            row = self._common(tag)
            row['Instruments Installed'] = self._incoming(tag.id, RelationshipKind.INSTALLATION)
            row['Related'] = self._related(tag.id)
            row['Note & Hold'] = ', '.join(self.graph.notes_for(tag.id))
            rows.append(row)
        return pd.DataFrame(rows, columns=EQUIPMENT_COLUMNS)

    def line_rows(self) -> pd.DataFrame:
        rows = []
        for tag in self.graph.tags_by_category(Category.LINE):
            row = self._common(tag)
            row['From'] = self._incoming(tag.id, RelationshipKind.CONNECTION)
            row['To'] = self._outgoing(tag.id, RelationshipKind.CONNECTION)
            row['Instruments Installed'] = self._incoming(tag.id, RelationshipKind.INSTALLATION)
            row['Related'] = self._related(tag.id)
            row['Note & Hold'] = ', '.join(self.graph.notes_for(tag.id))
            rows.append(row)
        return pd.DataFrame(rows, columns=LINE_COLUMNS)

    def instrument_rows(self) -> pd.DataFrame:
        rows = []
        for tag in self.graph.tags_by_category(Category.INSTRUMENT):
            row = self._common(tag)
            row['Installed On'] = self._outgoing(tag.id, RelationshipKind.INSTALLATION)
            row['Related'] = self._related(tag.id)
            row['Note & Hold'] = ', '.join(self.graph.notes_for(tag.id))
            rows.append(row)
        return pd.DataFrame(rows, columns=INSTRUMENT_COLUMNS)

    def note_rows(self) -> pd.DataFrame:
        rows = []
        for tag in self.graph.tags_by_category(Category.NOTES_AND_HOLDS):
            row = self._common(tag)
            row['Referenced By'] = self._incoming(tag.id, RelationshipKind.NOTE)
            rows.append(row)
        return pd.DataFrame(rows, columns=NOTE_COLUMNS)

    def build_sheets(self) -> Dict[str, pd.DataFrame]:
        """All export sheets keyed by sheet name, in workbook order."""
        self.refresh()
        return {
            SHEET_NAMES[Category.EQUIPMENT]: self.equipment_rows(),
            SHEET_NAMES[Category.LINE]: self.line_rows(),
            SHEET_NAMES[Category.INSTRUMENT]: self.instrument_rows(),
            SHEET_NAMES[Category.NOTES_AND_HOLDS]: self.note_rows(),
        }

    # === Writers ===

    def write_excel(self, path: Union[str, Path]) -> Path:
        """
        Write the workbook.

        Args:
            path: Destination .xlsx file

        Returns:
            The written path
        """
        path = Path(path)
        sheets = self.build_sheets()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with pd.ExcelWriter(path, engine='openpyxl') as writer:
                for sheet_name, frame in sheets.items():
                    frame.to_excel(writer, sheet_name=sheet_name, index=False)
        except OSError as e:
            raise StorageError(f"Could not write Excel export {path}: {e}") from e

        self.logger.info(
            f"Exported {sum(len(frame) for frame in sheets.values())} rows "
            f"across {len(sheets)} sheets to {path}"
        )
        return path

    def generate_csv_files(self, output_dir: Union[str, Path] = "output",
                           subfolder_name: Optional[str] = None) -> Tuple[str, str]:
        """
        Generate tags.csv and relationships.csv.

        Args:
            output_dir: Base output directory
            subfolder_name: Optional subfolder name (usually the PDF name)

        Returns:
            Tuple of (tags_file_path, relationships_file_path)
        """
        self.refresh()
        final_output_dir = self._prepare_output_directory(str(output_dir), subfolder_name)
        tags_file = self._generate_tags_csv(final_output_dir)
        relationships_file = self._generate_relationships_csv(final_output_dir)
        self.logger.info(f"CSV files written to {final_output_dir}")
        return tags_file, relationships_file

    def _prepare_output_directory(self, output_dir: str, subfolder_name: Optional[str]) -> str:
        """Prepare the output directory, creating subfolder if name provided."""
        if subfolder_name:
            final_output_dir = os.path.join(output_dir, subfolder_name)
        else:
            final_output_dir = output_dir

        os.makedirs(final_output_dir, exist_ok=True)
        return final_output_dir

    def _generate_tags_csv(self, output_dir: str) -> str:
        tags_file = os.path.join(output_dir, "tags.csv")
        header = ['id', 'text', 'category', 'page', 'x1', 'y1', 'x2', 'y2', 'drawing_number']

        with open(tags_file, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for tag in self.graph.tags:
                writer.writerow([
                    tag.id, tag.text, tag.category.value, tag.page,
                    tag.bbox.x1, tag.bbox.y1, tag.bbox.x2, tag.bbox.y2,
                    self.graph.drawing_number_for_page(tag.page),
                ])

        return tags_file

    def _generate_relationships_csv(self, output_dir: str) -> str:
        relationships_file = os.path.join(output_dir, "relationships.csv")
        header = ['id', 'source_id', 'target_id', 'type', 'source_text', 'target_text']

        with open(relationships_file, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for rel in self.graph.relationships:
                writer.writerow([
                    rel.id, rel.source_id, rel.target_id, rel.type.value,
                    self._entity_text(rel.source_id), self._entity_text(rel.target_id),
                ])

        return relationships_file

    def _entity_text(self, entity_id: str) -> str:
        if entity_id in self._view:
            return self._view.nodes[entity_id]['text']
        return ''


def export_to_excel(graph: TagGraph, path: Union[str, Path]) -> Path:
    """Quick function to write the Excel export of a graph."""
    return TagSheetExporter(graph).write_excel(path)
