"""Core domain: resources, modules and the service that manages their lifecycle."""