"""
Operations Layer

Pure composition logic, kept free of storage and transport concerns:
- fingerprint: board -> canonical composition identity
- aggregator: folds game outcomes into per-composition records
- tier_classifier: S/A/B/C labels and sample-size confidence
- snapshot_builder: ranked meta reports with trait/champion roll-ups
- query_filters: filter defaults, validation, sorting and paging
"""
