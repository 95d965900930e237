"""Tiered pricing domain"""
