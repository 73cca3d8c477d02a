"""
PDF File Validation and Resource Management Utilities

Input checks run before a document is handed to pikepdf, plus a resource
guard whose deadline doubles as the stop signal for long page parses.
"""

import os
import tempfile
import time
from typing import Optional, Tuple, Dict, Any
import logging

import psutil

logger = logging.getLogger(__name__)

VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'MAX_FILE_SIZE_MB': 50,
    'MAX_PROCESSING_TIME_SECONDS': 300,
    'MIN_FREE_MB': 100,
    'SUPPORTED_PDF_VERSIONS': ['1.0', '1.1', '1.2', '1.3', '1.4', '1.5', '1.6', '1.7', '2.0'],
}


class PdfValidationError(Exception):
    """Document missing, malformed or rejected before processing"""
    pass


def _check_header(header: bytes) -> Tuple[bool, Optional[str]]:
    if len(header) < 4:
        return False, "File too small to be a valid PDF"
    if not header.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
        return False, f"Invalid PDF signature: {header[:4]!r}"
    if len(header) >= 8:
        version = header[5:8].decode('ascii', errors='replace')
        if version not in VALIDATION_CONSTANTS['SUPPORTED_PDF_VERSIONS']:
            # Many files with odd headers still parse
            logger.warning(f"Unsupported PDF version: {version}")
    return True, None


def validate_pdf_signature(file_path: str) -> Tuple[bool, Optional[str]]:
    """
    Check the %PDF magic bytes and header version.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        with open(file_path, 'rb') as f:
            return _check_header(f.read(8))
    except FileNotFoundError:
        return False, f"File not found: {file_path}"
    except PermissionError:
        return False, f"Permission denied accessing file: {file_path}"
    except OSError as e:
        return False, f"Error validating PDF signature: {str(e)}"


def validate_file_size(file_path: str, max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']
    try:
        size_mb = os.path.getsize(file_path) / (1024 * 1024)
    except OSError as e:
        return False, f"Error checking file size: {str(e)}"
    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"
    return True, None


def validate_file_content(content: bytes, max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate uploaded bytes before they are written to a temporary file."""
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']
    size_mb = len(content) / (1024 * 1024)
    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"
    return _check_header(content[:8])


def validate_processing_environment() -> Tuple[bool, Optional[str]]:
    """Require a minimum of free memory and temp-dir disk space."""
    min_free = VALIDATION_CONSTANTS['MIN_FREE_MB']
    try:
        available_mb = psutil.virtual_memory().available / (1024 * 1024)
        temp_dir = tempfile.gettempdir()
        free_mb = psutil.disk_usage(temp_dir).free / (1024 * 1024)
    except OSError as e:
        return False, f"Error checking system resources: {str(e)}"

    if available_mb < min_free:
        return False, f"Insufficient memory available: {available_mb:.1f}MB (need at least {min_free}MB)"
    if free_mb < min_free:
        return False, f"Insufficient disk space in {temp_dir}: {free_mb:.1f}MB (need at least {min_free}MB)"
    logger.debug(f"Environment validation passed: {available_mb:.1f}MB memory, {free_mb:.1f}MB disk")
    return True, None


class ResourceManager:
    """
    Deadline for one processing run, logging elapsed time and RSS growth.

    `time_exceeded` is suitable as the `stop` callable of feature extraction,
    so a parse that outlives its budget ends cleanly with partial results.
    """

    def __init__(self, max_time_seconds: Optional[int] = None):
        self.max_time_seconds = max_time_seconds or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        self.start_time: Optional[float] = None
        self.start_memory: Optional[float] = None

    @staticmethod
    def _rss_mb() -> float:
        return psutil.Process().memory_info().rss / (1024 * 1024)

    def __enter__(self):
        self.start_time = time.monotonic()
        self.start_memory = self._rss_mb()
        logger.debug(f"ResourceManager: starting with {self.start_memory:.1f}MB memory")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            elapsed = time.monotonic() - self.start_time
            memory_delta = self._rss_mb() - (self.start_memory or 0.0)
            logger.info(f"ResourceManager: completed in {elapsed:.2f}s, memory usage: {memory_delta:+.1f}MB")
        return False

    def elapsed(self) -> float:
        if self.start_time is None:
            return 0.0
        return time.monotonic() - self.start_time

    def time_exceeded(self) -> bool:
        return self.elapsed() > self.max_time_seconds


def comprehensive_pdf_validation(file_path: str, max_size_mb: Optional[int] = None) -> Dict[str, Any]:
    """
    Run every file-level check and collect the outcome.

    Returns:
        Dictionary with is_valid, errors, warnings and file_info
    """
    results: Dict[str, Any] = {
        'is_valid': True,
        'errors': [],
        'warnings': [],
        'file_info': {}
    }

    if not os.path.exists(file_path):
        results['is_valid'] = False
        results['errors'].append(f"File not found: {file_path}")
        return results

    for check in (
        lambda: validate_file_size(file_path, max_size_mb),
        lambda: validate_pdf_signature(file_path),
    ):
        ok, error = check()
        if not ok:
            results['is_valid'] = False
            results['errors'].append(error)

    env_ok, env_error = validate_processing_environment()
    if not env_ok:
        # Low resources degrade performance but do not invalidate the file
        results['warnings'].append(env_error)

    if results['is_valid']:
        results['file_info']['size_mb'] = round(os.path.getsize(file_path) / (1024 * 1024), 2)

    return results


__all__ = [
    'validate_pdf_signature',
    'validate_file_size',
    'validate_file_content',
    'validate_processing_environment',
    'comprehensive_pdf_validation',
    'ResourceManager',
    'PdfValidationError',
    'VALIDATION_CONSTANTS'
]
