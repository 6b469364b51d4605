"""API Blueprints"""
