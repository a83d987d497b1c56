"""Command-line interface for logkv stores."""
