"""Recurring domain - recurring booking groups"""
