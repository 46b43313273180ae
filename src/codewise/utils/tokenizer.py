# src/codewise/utils/tokenizer.py
import logging

import tiktoken

logger = logging.getLogger(__name__)


class Tokenizer:
    _encoding = None
    _unavailable = False

    @classmethod
    def get_encoding(cls):
        if cls._encoding is None and not cls._unavailable:
            for name in ("cl100k_base", "p50k_base"):
                try:
                    cls._encoding = tiktoken.get_encoding(name)
                    break
                except Exception as e:
                    # Encodings are downloaded on first use; offline runs land here
                    logger.debug(f"Could not load tiktoken encoding {name}: {e}")
            else:
                cls._unavailable = True
        return cls._encoding

    @staticmethod
    def count(text: str) -> int:
        """Estimates token count for a given text."""
        encoding = Tokenizer.get_encoding()
        if encoding is None:
            # Rough estimate: ~4 characters per token
            return len(text) // 4
        return len(encoding.encode(text, disallowed_special=()))
