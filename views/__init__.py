# Views package
