"""Core models, logging, and process utilities shared by both pipelines."""
