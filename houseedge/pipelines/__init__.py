"""HOUSEEDGE Pipelines - process composition root."""

from .house import HouseEdge

__all__ = ["HouseEdge"]
