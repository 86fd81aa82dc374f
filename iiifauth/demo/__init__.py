"""
Demo application for iiifauth.
"""
