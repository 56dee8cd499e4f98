"""SDN VE overlay agent."""
