"""Infrastructure layer: persistence, stores, adapters and importers."""
