"""Report generators"""
