# Minimal ABIs: only the entries this project reads.

HOMORA_BANK_ABI = [
    {"name": "nextPositionId", "inputs": [], "outputs": [{"name": "", "type": "uint256"}],
     "stateMutability": "view", "type": "function"},
    {"name": "getPositionInfo", "inputs": [{"name": "positionId", "type": "uint256"}], "outputs": [
        {"name": "owner", "type": "address"},
        {"name": "collToken", "type": "address"},
        {"name": "collId", "type": "uint256"},
        {"name": "collateralSize", "type": "uint256"}],
     "stateMutability": "view", "type": "function"},
]

MULTICALL2_ABI = [
    {"inputs": [{"components": [{"internalType": "address", "name": "target", "type": "address"},
                                {"internalType": "bytes", "name": "callData", "type": "bytes"}],
                 "internalType": "struct Multicall2.Call[]", "name": "calls", "type": "tuple[]"}],
     "name": "aggregate",
     "outputs": [{"internalType": "uint256", "name": "blockNumber", "type": "uint256"},
                 {"internalType": "bytes[]", "name": "returnData", "type": "bytes[]"}],
     "stateMutability": "nonpayable", "type": "function"},
]
