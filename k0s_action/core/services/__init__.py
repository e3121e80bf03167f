"""Host, cluster and runner services."""
