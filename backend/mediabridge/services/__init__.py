"""Service layer: task store, endpoint registry, upstream gateway, resolver, tools.

Status lookups follow the async task pattern used by every Kie.ai provider:
  POST create task → store task id → probe status endpoints on demand
"""
