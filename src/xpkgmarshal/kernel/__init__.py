"""Marshaling pipeline: decoding, linting, dependency extraction and schema indexing."""
