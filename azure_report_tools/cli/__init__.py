"""Command-line interface"""
