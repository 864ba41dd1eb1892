"""Tests for the Formapro backend."""
