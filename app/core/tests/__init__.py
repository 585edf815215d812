"""Tests for core app."""
