"""Draft engine: turn order, pick/ban state machine, deadline sweep and team balance."""
