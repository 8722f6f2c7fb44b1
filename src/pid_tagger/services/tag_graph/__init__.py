"""
Tag graph service: curated tags, raw text and relationships of a document.
"""

from .graph import TagGraph, RAW_TEXT_POOL, TAG_POOL
from .project import ProjectDocument, load_project, parse_project, project_file_name, save_project

__all__ = [
    "TagGraph",
    "TAG_POOL",
    "RAW_TEXT_POOL",
    "ProjectDocument",
    "save_project",
    "load_project",
    "parse_project",
    "project_file_name",
]
