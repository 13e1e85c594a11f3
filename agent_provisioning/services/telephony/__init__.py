"""Telephony number providers"""
