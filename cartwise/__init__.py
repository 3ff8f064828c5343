"""
CartWise: local multi-store price comparison

Modules:
- common: configuration, logging, errors and the price event bus
- database: SQLite storage layer and seed data loader
- comparison: staleness refresh, availability filter, aggregation and the engine facade
"""

__version__ = "0.1.0"
