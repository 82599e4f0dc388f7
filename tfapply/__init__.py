"""Helpers for the terraform-apply GitHub Action."""
