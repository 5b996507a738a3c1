"""Collaborator clients (billing, notifications)"""
