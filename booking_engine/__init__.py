"""Booking engine: availability definitions, slot generation and the booking lifecycle"""
