"""UI-level infrastructure shared by the input and its host."""
