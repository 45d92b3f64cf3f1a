"""
Test suite for the channel SKU mapping service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_bulk_upload_service.py -v
"""
