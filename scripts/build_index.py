#!/usr/bin/env python
"""
Build Index - Build or load the HTS knowledge base outside the web process.

Parses the schedule PDF, extracts HTS codes, embeds passages and writes the
cache the API loads on startup.

Usage:
    # Load from cache, building only if missing or corrupt
    python scripts/build_index.py

    # Rebuild from a specific PDF, discarding the cache
    python scripts/build_index.py --pdf data/USA.pdf --force

    # Print counts as JSON
    python scripts/build_index.py --stats
"""

import sys
import os
import click
import json
import logging

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import config
from app.chat.embeddings import GeminiEmbeddings
from app.services.gemini_client import GeminiClient
from app.services.knowledge_base import KnowledgeBaseService
from app.storage import KnowledgeBaseCache, get_storage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)


@click.command()
@click.option('--pdf', '-p', default=None,
              help=f'Schedule PDF path. Default: {config.PDF_PATH}')
@click.option('--force', '-f', is_flag=True,
              help='Delete cached artifacts and rebuild from the PDF')
@click.option('--stats', is_flag=True,
              help='Print knowledge base counts as JSON')
def main(pdf: str, force: bool, stats: bool):
    """Build or load the HTS knowledge base."""
    service = KnowledgeBaseService(
        cache=KnowledgeBaseCache(get_storage()),
        embeddings=GeminiEmbeddings(),
        llm=GeminiClient(),
        pdf_path=pdf or config.PDF_PATH,
    )

    try:
        kb = service.regenerate() if force else service.load_or_build()
    except Exception as e:
        logger.error(f"Knowledge base build failed: {e}")
        sys.exit(1)

    report = service.last_report
    summary = {**kb.stats(), **(report.as_dict() if report else {})}

    if stats:
        click.echo(json.dumps(summary, indent=2))
    else:
        click.echo(
            f"Loaded {summary['chunks_count']} chunks, {summary['hs_codes_count']} HTS codes, "
            f"{summary['item_mappings_count']} item mappings (source: {summary.get('source')})"
        )


if __name__ == "__main__":
    main()
