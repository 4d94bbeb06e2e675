"""Allow ``python -m src.cli`` execution."""

from src.cli.knowledge_base import main

main()
