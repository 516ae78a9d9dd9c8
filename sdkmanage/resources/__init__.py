"""
Resource kinds and the operations dispatched across them.

Toolings, targets and the SDK itself are resources. Each kind implements
ResourceType; the Dispatcher applies the generic operations to any kind.
"""
