"""Bookings Domain - booking state machine, timers and form validation"""
