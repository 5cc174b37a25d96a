"""
Application Layer

Orchestrates the domain model and the infrastructure ports:
- interfaces/: Port interfaces for infrastructure adapters
- services/: Credential guard, queue coordinator and playback scheduler
"""
