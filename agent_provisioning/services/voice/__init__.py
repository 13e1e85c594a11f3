"""Conversational-agent providers"""
