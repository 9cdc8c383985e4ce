"""Viewing scheduling domain - availability, bookings, reminders and confirmations"""
