"""Cost Management queries"""
