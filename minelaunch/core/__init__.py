"""Platform detection, rule evaluation and game launch."""
