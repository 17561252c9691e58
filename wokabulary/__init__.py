"""
                Wokabulary POS

Restaurant point-of-sale backend: staff login, menu management,
order lifecycle tracking, ingredient stock and bill delivery.
"""

__version__ = "1.0.0"
