"""Shared pytest configuration for Hotelero tests."""
import sys

sys.dont_write_bytecode = True
