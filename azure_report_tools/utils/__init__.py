"""Logging, configuration, retry, filtering and output helpers"""
