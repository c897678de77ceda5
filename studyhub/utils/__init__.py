"""Utility subpackage for the study service"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_review,
	log_snapshot,
	log_export,
	set_request_context,
	get_request_context,
)
from .config import Settings, get_settings

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_review',
	'log_snapshot',
	'log_export',
	'set_request_context',
	'get_request_context',
	'Settings',
	'get_settings',
]
