"""
schednotify - status notifications for scheduled workloads.

Watches the runs of scheduled jobs and workflows, matches them against
declarative notification rules, and posts templated messages to chat
destinations.

- schednotify.core: errors, logging, secrets, settings
- schednotify.domain: workloads, rules, destinations, selectors
- schednotify.engine: classification, matching, rendering, orchestration
- schednotify.framework: message layout and dispatch channels
- schednotify.stores: declarative record and secret stores
- schednotify.cli: operator command line
"""

__version__ = "0.1.0"
