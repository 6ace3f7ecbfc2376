"""Child processes on pseudo-terminals, with coloured, name-prefixed output."""