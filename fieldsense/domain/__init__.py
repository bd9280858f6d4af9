"""Domain layer: sensor entities, value objects, errors and parse outcomes."""
