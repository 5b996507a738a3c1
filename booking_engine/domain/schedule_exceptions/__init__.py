"""Schedule Exceptions Domain - blackout intervals, one-time or recurring"""
