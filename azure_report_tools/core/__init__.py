"""Core models, interval consolidation and report orchestration"""
