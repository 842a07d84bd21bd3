"""
Token Claim Service - HTTP API
"""
