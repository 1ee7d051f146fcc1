# Integrations - remote service clients
