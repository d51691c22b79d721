"""
Tax knowledge base loader.
Reads the IRS Publication 17 text and splits it into paragraph-aligned chunks.
"""

from pathlib import Path
from typing import Optional

from tax_gpt.utils import get_logger, text_stats

logger = get_logger(__name__)

PARAGRAPH_BREAK = "\n\n"


def _flush(chunks: list[str], paragraphs: list[str]) -> None:
    chunk = PARAGRAPH_BREAK.join(paragraphs).strip()
    if chunk:
        chunks.append(chunk)


def chunk_text(text: str, max_size: int) -> list[str]:
    """
    Split text into chunks of whole paragraphs.
    
    Paragraphs are accumulated until adding the next one would push the
    chunk past ``max_size``. A paragraph is never split, so one longer than
    ``max_size`` becomes a chunk of its own.
    
    Args:
        text: Text to chunk
        max_size: Target maximum chunk length in characters
        
    Returns:
        List of stripped chunks; empty for empty input
    """
    chunks = []
    current: list[str] = []
    current_len = 0
    
    for para in text.split(PARAGRAPH_BREAK):
        # Length of the buffer once the paragraph and its delimiter are added
        joined_len = current_len + len(PARAGRAPH_BREAK) + len(para) if current else len(para)
        if current and joined_len > max_size:
            _flush(chunks, current)
            current, current_len = [para], len(para)
        else:
            current.append(para)
            current_len = joined_len
    
    _flush(chunks, current)
    return chunks


class KnowledgeBase:
    """The static reference document the assistant answers from."""
    
    SOURCE = "IRS Publication 17 (2025)"
    TITLE = "Your Federal Income Tax For Individuals"
    
    def __init__(self, text: str = "", chunk_size: int = 3000, path: Optional[Path] = None):
        """
        Initialize the knowledge base.
        
        Args:
            text: Full document text
            chunk_size: Maximum chunk size used for retrieval
            path: File the text was read from, if any
        """
        self.text = text
        self.chunk_size = chunk_size
        self.path = path
        self.chunks = chunk_text(text, chunk_size)
    
    @classmethod
    def load(cls, path: str | Path, chunk_size: int = 3000) -> "KnowledgeBase":
        """
        Load and chunk a knowledge base file.
        
        Raises:
            FileNotFoundError: The file does not exist
        """
        kb_path = Path(path)
        logger.info(f"Loading knowledge base from {kb_path}")
        
        kb = cls(kb_path.read_text(encoding="utf-8"), chunk_size, kb_path)
        logger.info(f"Split {kb_path.name} into {len(kb.chunks)} chunks")
        return kb
    
    def stats(self) -> dict[str, int]:
        """Character, line, word and chunk counts."""
        return {**text_stats(self.text), "chunks": len(self.chunks)}
