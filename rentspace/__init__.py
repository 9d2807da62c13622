"""
Учет жилого пространства (объект -> комнаты -> кровати) и жильцов.
"""

__version__ = "0.1.0"
