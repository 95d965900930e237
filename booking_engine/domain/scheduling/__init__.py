"""Scheduling domain - conflict detection"""
