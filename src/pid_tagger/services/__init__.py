"""
Domain services for PID Tagger.

Contains the main business logic services:
- extraction: Text runs to tags and raw text, page by page
- tag_graph: Curated tags, relationships and project files
- export: Excel and CSV output
"""
