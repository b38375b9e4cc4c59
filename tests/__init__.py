"""Test suite for the customer migration engine."""
