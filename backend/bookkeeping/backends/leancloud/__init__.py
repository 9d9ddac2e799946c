"""
LeanCloud REST backend
"""
