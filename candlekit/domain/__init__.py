"""Domain layer: value types, ports, indicators and error taxonomy."""
