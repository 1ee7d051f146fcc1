"""
Classification Relay API Layer.
"""
