"""Helpers shared across booking domains"""
