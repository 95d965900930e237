"""Domain packages: pricing, scheduling, bookings, recurring"""
