"""
fiscal_kernel -- shared foundation of the fiscal decomposition engines.

Provides Decimal amount handling (``fiscal_kernel.domain``), the typed
exception hierarchy (``fiscal_kernel.exceptions``) and structured JSON
logging (``fiscal_kernel.logging_config``).  Zero I/O apart from logging.
"""
