"""Azure authentication"""
