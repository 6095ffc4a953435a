"""omnibuilder — conversational multi-file project builder with preview and versioning."""
