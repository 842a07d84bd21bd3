"""
Token Claim Service - Core Package

Configuration, logging, authorization and the error taxonomy.
"""
