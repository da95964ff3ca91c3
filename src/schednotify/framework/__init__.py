"""
Delivery framework: message layout and dispatch channels.

Use: from schednotify.framework.channels import TokenChannel, WebhookChannel
"""
