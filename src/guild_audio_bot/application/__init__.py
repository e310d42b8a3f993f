"""
Application Layer

Orchestrates the per-guild components to fulfil bot commands.

Structure:
- commands/: Command router translating requests into core operations
- services/: Registries, coordinators, and the playback flow
- interfaces/: Port interfaces for infrastructure adapters
"""
