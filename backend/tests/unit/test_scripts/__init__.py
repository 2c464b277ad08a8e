"""Maintenance script tests"""
