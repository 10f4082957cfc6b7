"""
File: app/conversation/__init__.py

Project: AgriConnect WhatsApp Bot

Purpose:
WhatsApp conversation core: session store, reply texts and the state machine.
"""
