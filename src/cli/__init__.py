"""Command-line tools for groundwire.

- ``python -m src.cli ingest file|directory PATH`` ingests documents.
- ``python -m src.cli query TEXT [--web]`` runs hybrid retrieval.
- ``python -m src.cli get KEY`` prints one stored paragraph.
"""
