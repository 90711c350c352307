"""Blob storage for media artifacts."""

from lio_agent.storage.uploader import BlobUploader, PresignedUploader, UploadError

__all__ = ["BlobUploader", "PresignedUploader", "UploadError"]
