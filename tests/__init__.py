"""Test suite for the AeroAware backend."""
