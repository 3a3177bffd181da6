# Core configuration and logging
