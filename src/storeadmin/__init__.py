"""
storeadmin - привилегированные admin-операции магазина.
"""

__version__ = "1.0.0"
