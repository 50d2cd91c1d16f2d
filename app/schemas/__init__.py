# Response schemas
