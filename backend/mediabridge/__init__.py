"""kie-mediabridge — Kie.ai image and video generation exposed as RPC tools."""

__version__ = "0.1.0"
