"""Language-server detection, sessions and result formatting."""