"""Bookings domain - single bookings and the status state machine"""
