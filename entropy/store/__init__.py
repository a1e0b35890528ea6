"""Helpers for encoding resource labels and sync results for storage."""