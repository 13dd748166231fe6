"""Repository-level pytest configuration; keeps ``webapp`` and ``scripts`` importable."""
