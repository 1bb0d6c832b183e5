"""Upstream sign fetching and tile-store fetching"""
from .pointer_resolver import HttpPointerResolver, LocalPointerResolver, PointerResolver
from .sign_fetcher import SignRecordFetcher
from .tile_fetcher import TileFetchOrchestrator

__all__ = [
    "HttpPointerResolver",
    "LocalPointerResolver",
    "PointerResolver",
    "SignRecordFetcher",
    "TileFetchOrchestrator",
]
