"""Orchestrator package - coordinates publish workflows."""
from .core import PublishOrchestrator
from .file_collector import FileCollector
from .file_publisher import FilePublisher
from .worker_pool import UploadWorkerPool

__all__ = ["PublishOrchestrator", "FileCollector", "FilePublisher", "UploadWorkerPool"]
