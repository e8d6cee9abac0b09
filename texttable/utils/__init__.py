"""Configuration, settings, credential and concurrency helpers."""
