"""
PlazaNetInsights - Utilities Package

Configuration, logging, error taxonomy and reporting periods.
"""
