"""Report store access: reading submitted reports out of MongoDB."""
