"""RestroFlow subscription billing and invoicing service."""
