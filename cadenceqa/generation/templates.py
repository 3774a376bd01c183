# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Deterministic Cadence 1.0 fallback templates.

Each template is a complete, minimal contract for one category. Templates
are plain ``string.Template`` sources with a single ``$name`` placeholder
(Cadence never uses ``$``), so rendering cannot fail on braces.

Every template passes the composite validator in lenient mode; the test
suite asserts this for each category.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from string import Template
from typing import Dict, Tuple

from cadenceqa.core.models import Complexity, ContractCategory

DEFAULT_CONTRACT_NAME = "MyContract"
EMERGENCY_CONTRACT_NAME = "EmergencyFallback"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ContractTemplate:
    """A named fallback contract for one category."""

    id: str
    name: str
    category: ContractCategory
    complexity: Complexity
    tags: Tuple[str, ...]
    source: Template

    def render(self, contract_name: str = DEFAULT_CONTRACT_NAME) -> str:
        if not _IDENTIFIER.match(contract_name):
            contract_name = DEFAULT_CONTRACT_NAME
        return self.source.substitute(name=contract_name)


NFT_TEMPLATE = Template(
    '''import "NonFungibleToken"
import "MetadataViews"
import "ViewResolver"

/// $name is a minimal NFT collection contract.
access(all) contract $name {

    access(all) var totalSupply: UInt64

    access(all) let CollectionStoragePath: StoragePath
    access(all) let CollectionPublicPath: PublicPath

    access(all) event Withdraw(id: UInt64, from: Address?)
    access(all) event Deposit(id: UInt64, to: Address?)
    access(all) event Minted(id: UInt64, name: String)

    access(all) resource NFT: NonFungibleToken.NFT {
        access(all) let id: UInt64
        access(all) let name: String
        access(all) let description: String
        access(all) let thumbnail: String

        access(all) event ResourceDestroyed(id: UInt64 = self.id, uuid: UInt64 = self.uuid)

        init(id: UInt64, name: String, description: String, thumbnail: String) {
            self.id = id
            self.name = name
            self.description = description
            self.thumbnail = thumbnail
        }

        access(all) fun createEmptyCollection(): @{NonFungibleToken.Collection} {
            return <- $name.createEmptyCollection(nftType: Type<@$name.NFT>())
        }

        access(all) view fun getViews(): [Type] {
            return [Type<MetadataViews.Display>()]
        }

        access(all) fun resolveView(_ view: Type): AnyStruct? {
            if view == Type<MetadataViews.Display>() {
                return MetadataViews.Display(
                    name: self.name,
                    description: self.description,
                    thumbnail: MetadataViews.HTTPFile(url: self.thumbnail)
                )
            }
            return nil
        }
    }

    access(all) resource Collection: NonFungibleToken.Collection {
        access(all) var ownedNFTs: @{UInt64: {NonFungibleToken.NFT}}

        init() {
            self.ownedNFTs <- {}
        }

        access(NonFungibleToken.Withdraw) fun withdraw(withdrawID: UInt64): @{NonFungibleToken.NFT} {
            pre {
                self.ownedNFTs[withdrawID] != nil: "NFT not found in collection"
            }
            let token <- self.ownedNFTs.remove(key: withdrawID)!
            emit Withdraw(id: token.id, from: self.owner?.address)
            return <- token
        }

        access(all) fun deposit(token: @{NonFungibleToken.NFT}) {
            pre {
                token.isInstance(Type<@$name.NFT>()): "Cannot deposit an NFT of another type"
            }
            let nft <- token as! @$name.NFT
            let id = nft.id
            let previous <- self.ownedNFTs[id] <- nft
            emit Deposit(id: id, to: self.owner?.address)
            destroy previous
        }

        access(all) view fun getIDs(): [UInt64] {
            return self.ownedNFTs.keys
        }

        access(all) view fun borrowNFT(_ id: UInt64): &{NonFungibleToken.NFT}? {
            return &self.ownedNFTs[id]
        }

        access(all) view fun getSupportedNFTTypes(): {Type: Bool} {
            return {Type<@$name.NFT>(): true}
        }

        access(all) view fun isSupportedNFTType(type: Type): Bool {
            return type == Type<@$name.NFT>()
        }

        access(all) fun createEmptyCollection(): @{NonFungibleToken.Collection} {
            return <- create Collection()
        }
    }

    access(all) fun createEmptyCollection(nftType: Type): @{NonFungibleToken.Collection} {
        return <- create Collection()
    }

    access(account) fun mintNFT(recipient: &{NonFungibleToken.Collection}, name: String, description: String, thumbnail: String) {
        pre {
            name.length > 0: "NFT name cannot be empty"
        }
        let nft <- create NFT(id: self.totalSupply, name: name, description: description, thumbnail: thumbnail)
        emit Minted(id: nft.id, name: name)
        recipient.deposit(token: <- nft)
        self.totalSupply = self.totalSupply + 1
    }

    init() {
        self.totalSupply = 0
        self.CollectionStoragePath = /storage/${name}Collection
        self.CollectionPublicPath = /public/${name}Collection
        self.account.storage.save(<- create Collection(), to: self.CollectionStoragePath)
        let cap = self.account.capabilities.storage.issue<&Collection>(self.CollectionStoragePath)
        self.account.capabilities.publish(cap, at: self.CollectionPublicPath)
    }
}
'''
)

FUNGIBLE_TOKEN_TEMPLATE = Template(
    '''import "FungibleToken"

/// $name is a minimal fungible token contract.
access(all) contract $name {

    access(all) var totalSupply: UFix64

    access(all) let VaultStoragePath: StoragePath
    access(all) let VaultPublicPath: PublicPath
    access(all) let AdminStoragePath: StoragePath

    access(all) event TokensWithdrawn(amount: UFix64, from: Address?)
    access(all) event TokensDeposited(amount: UFix64, to: Address?)
    access(all) event TokensMinted(amount: UFix64)

    access(all) resource interface VaultPublic {
        access(all) var balance: UFix64
    }

    access(all) resource Vault: VaultPublic {
        access(all) var balance: UFix64

        access(all) event ResourceDestroyed(balance: UFix64 = self.balance, uuid: UInt64 = self.uuid)

        init(balance: UFix64) {
            self.balance = balance
        }

        access(all) fun withdraw(amount: UFix64): @Vault {
            pre {
                amount > 0.0: "Withdrawal amount must be positive"
                self.balance >= amount: "Insufficient balance"
            }
            self.balance = self.balance - amount
            emit TokensWithdrawn(amount: amount, from: self.owner?.address)
            return <- create Vault(balance: amount)
        }

        access(all) fun deposit(from: @Vault) {
            pre {
                from.balance > 0.0: "Deposit amount must be positive"
            }
            let amount = from.balance
            self.balance = self.balance + amount
            emit TokensDeposited(amount: amount, to: self.owner?.address)
            destroy from
        }

        access(all) view fun getBalance(): UFix64 {
            return self.balance
        }
    }

    access(all) resource Administrator {
        access(all) event ResourceDestroyed(uuid: UInt64 = self.uuid)

        init() {
        }

        access(all) fun mintTokens(amount: UFix64): @Vault {
            pre {
                amount > 0.0: "Mint amount must be positive"
            }
            $name.totalSupply = $name.totalSupply + amount
            emit TokensMinted(amount: amount)
            return <- create Vault(balance: amount)
        }
    }

    access(all) fun createEmptyVault(): @Vault {
        return <- create Vault(balance: 0.0)
    }

    init() {
        self.totalSupply = 0.0
        self.VaultStoragePath = /storage/${name}Vault
        self.VaultPublicPath = /public/${name}Balance
        self.AdminStoragePath = /storage/${name}Admin
        self.account.storage.save(<- create Administrator(), to: self.AdminStoragePath)
    }
}
'''
)

MARKETPLACE_TEMPLATE = Template(
    '''import "NonFungibleToken"
import "FungibleToken"

/// $name keeps listed NFTs in escrow until they are sold.
access(all) contract $name {

    access(all) let commissionRate: UFix64
    access(all) var listingCount: UInt64
    access(self) let escrow: @{UInt64: Listing}

    access(all) event ListingCreated(listingID: UInt64, nftID: UInt64, price: UFix64, seller: Address)
    access(all) event ListingRemoved(listingID: UInt64)
    access(all) event ListingPurchased(listingID: UInt64, price: UFix64, buyer: Address)
    access(all) event Transfer(nftID: UInt64, from: Address, to: Address)

    access(all) resource Listing {
        access(all) let nftID: UInt64
        access(all) let price: UFix64
        access(all) let seller: Address
        access(self) var item: @{NonFungibleToken.NFT}?

        access(all) event ResourceDestroyed(nftID: UInt64 = self.nftID)

        init(item: @{NonFungibleToken.NFT}, price: UFix64, seller: Address) {
            self.nftID = item.id
            self.price = price
            self.seller = seller
            self.item <- item
        }

        access(contract) fun release(): @{NonFungibleToken.NFT} {
            let item <- self.item <- nil
            return <- item!
        }
    }

    access(all) fun createListing(item: @{NonFungibleToken.NFT}, price: UFix64, seller: Address): UInt64 {
        pre {
            price > 0.0: "Listing price must be positive"
        }
        let listingID = self.listingCount
        let listing <- create Listing(item: <- item, price: price, seller: seller)
        emit ListingCreated(listingID: listingID, nftID: listing.nftID, price: price, seller: seller)
        self.escrow[listingID] <-! listing
        self.listingCount = self.listingCount + 1
        return listingID
    }

    access(all) fun removeListing(listingID: UInt64, seller: Address): @{NonFungibleToken.NFT} {
        pre {
            self.escrow[listingID] != nil: "Listing does not exist"
        }
        let listing <- self.escrow.remove(key: listingID)!
        assert(listing.seller == seller, message: "Only the seller can remove a listing")
        let item <- listing.release()
        destroy listing
        emit ListingRemoved(listingID: listingID)
        return <- item
    }

    access(all) fun purchase(listingID: UInt64, payment: @{FungibleToken.Vault}, sellerReceiver: &{FungibleToken.Receiver}, buyer: Address): @{NonFungibleToken.NFT} {
        pre {
            self.escrow[listingID] != nil: "Listing does not exist"
            payment.balance > 0.0: "Payment cannot be empty"
        }
        let listing <- self.escrow.remove(key: listingID)!
        assert(payment.balance >= listing.price, message: "Insufficient payment")
        let commission <- payment.withdraw(amount: payment.balance * self.commissionRate)
        self.collectCommission(<- commission)
        sellerReceiver.deposit(from: <- payment)
        let item <- listing.release()
        emit ListingPurchased(listingID: listingID, price: listing.price, buyer: buyer)
        emit Transfer(nftID: listing.nftID, from: listing.seller, to: buyer)
        destroy listing
        return <- item
    }

    access(contract) fun collectCommission(_ commission: @{FungibleToken.Vault}) {
        let receiver = self.account.capabilities.borrow<&{FungibleToken.Receiver}>(/public/flowTokenReceiver)
            ?? panic("Marketplace commission receiver is not configured")
        receiver.deposit(from: <- commission)
    }

    init() {
        self.commissionRate = 0.025
        self.listingCount = 0
        self.escrow <- {}
    }
}
'''
)

DAO_TEMPLATE = Template(
    '''/// $name lets members create proposals and vote on them.
access(all) contract $name {

    access(all) enum ProposalStatus: UInt8 {
        access(all) case active
        access(all) case passed
        access(all) case rejected
    }

    access(all) let quorum: UInt64
    access(all) let votingPeriod: UFix64
    access(all) var proposalCount: UInt64
    access(self) let votingPower: {Address: UInt64}
    access(self) let proposals: @{UInt64: Proposal}

    access(all) event ProposalCreated(id: UInt64, title: String, proposer: Address)
    access(all) event VoteCast(proposalID: UInt64, voter: Address, inFavor: Bool)
    access(all) event ProposalExecuted(id: UInt64, passed: Bool)

    access(all) resource Proposal {
        access(all) let id: UInt64
        access(all) let title: String
        access(all) let proposer: Address
        access(all) let endTime: UFix64
        access(all) var yesVotes: UInt64
        access(all) var noVotes: UInt64
        access(all) var status: ProposalStatus
        access(self) let voters: {Address: Bool}

        access(all) event ResourceDestroyed(id: UInt64 = self.id)

        init(id: UInt64, title: String, proposer: Address, endTime: UFix64) {
            self.id = id
            self.title = title
            self.proposer = proposer
            self.endTime = endTime
            self.yesVotes = 0
            self.noVotes = 0
            self.status = ProposalStatus.active
            self.voters = {}
        }

        access(contract) fun recordVote(voter: Address, inFavor: Bool, weight: UInt64) {
            pre {
                self.voters[voter] == nil: "Address has already voted"
                getCurrentBlock().timestamp < self.endTime: "Voting period has ended"
            }
            self.voters[voter] = true
            if inFavor {
                self.yesVotes = self.yesVotes + weight
            } else {
                self.noVotes = self.noVotes + weight
            }
        }

        access(contract) fun finalize(): Bool {
            let passed = self.yesVotes + self.noVotes >= $name.quorum && self.yesVotes > self.noVotes
            self.status = passed ? ProposalStatus.passed : ProposalStatus.rejected
            return passed
        }
    }

    access(all) view fun isMember(_ address: Address): Bool {
        return self.votingPower[address] != nil
    }

    access(account) fun addMember(member: Address, power: UInt64) {
        pre {
            power > 0: "Voting power must be positive"
        }
        self.votingPower[member] = power
    }

    access(all) fun createProposal(title: String, proposer: Address): UInt64 {
        pre {
            self.isMember(proposer): "Only members can create proposals"
            title.length > 0: "Proposal title cannot be empty"
        }
        let id = self.proposalCount
        let endTime = getCurrentBlock().timestamp + self.votingPeriod
        self.proposals[id] <-! create Proposal(id: id, title: title, proposer: proposer, endTime: endTime)
        self.proposalCount = self.proposalCount + 1
        emit ProposalCreated(id: id, title: title, proposer: proposer)
        return id
    }

    access(all) fun vote(proposalID: UInt64, voter: Address, inFavor: Bool) {
        pre {
            self.isMember(voter): "Only members can vote"
            self.proposals[proposalID] != nil: "Proposal does not exist"
        }
        let proposal = (&self.proposals[proposalID] as &Proposal?)!
        proposal.recordVote(voter: voter, inFavor: inFavor, weight: self.votingPower[voter]!)
        emit VoteCast(proposalID: proposalID, voter: voter, inFavor: inFavor)
    }

    access(all) fun executeProposal(proposalID: UInt64): Bool {
        pre {
            self.proposals[proposalID] != nil: "Proposal does not exist"
        }
        let proposal = (&self.proposals[proposalID] as &Proposal?)!
        assert(getCurrentBlock().timestamp >= proposal.endTime, message: "Voting period has not ended")
        let passed = proposal.finalize()
        emit ProposalExecuted(id: proposalID, passed: passed)
        return passed
    }

    init() {
        self.quorum = 3
        self.votingPeriod = 604800.0
        self.proposalCount = 0
        self.votingPower = {self.account.address: 1}
        self.proposals <- {}
    }
}
'''
)

UTILITY_TEMPLATE = Template(
    '''/// $name stores a greeting and a counter.
access(all) contract $name {

    access(all) var greeting: String
    access(all) var counter: UInt64

    access(all) event GreetingChanged(greeting: String)
    access(all) event CounterIncremented(value: UInt64)

    access(all) view fun getGreeting(): String {
        return self.greeting
    }

    access(account) fun setGreeting(_ greeting: String) {
        pre {
            greeting.length > 0: "Greeting cannot be empty"
        }
        self.greeting = greeting
        emit GreetingChanged(greeting: greeting)
    }

    access(all) fun increment(): UInt64 {
        self.counter = self.counter + 1
        emit CounterIncremented(value: self.counter)
        return self.counter
    }

    init() {
        self.greeting = "Hello from $name"
        self.counter = 0
    }
}
'''
)

GENERIC_TEMPLATE = Template(
    '''/// $name is a minimal contract skeleton.
access(all) contract $name {

    access(all) var value: String

    access(all) event ValueUpdated(value: String)

    access(all) view fun getValue(): String {
        return self.value
    }

    access(account) fun setValue(_ value: String) {
        self.value = value
        emit ValueUpdated(value: value)
    }

    init() {
        self.value = ""
    }
}
'''
)

EMERGENCY_TEMPLATE = '''/// Returned when no other fallback contract could be produced.
access(all) contract EmergencyFallback {

    access(all) let message: String

    access(all) event Initialized(message: String)

    access(all) view fun getMessage(): String {
        return self.message
    }

    init() {
        self.message = "Code generation failed. Please try again with a more specific prompt."
        emit Initialized(message: self.message)
    }
}
'''


TEMPLATES: Dict[ContractCategory, ContractTemplate] = {
    template.category: template
    for template in (
        ContractTemplate(
            "basic-nft",
            "Basic NFT Collection",
            ContractCategory.NFT,
            Complexity.SIMPLE,
            ("nft", "collection", "metadata"),
            NFT_TEMPLATE,
        ),
        ContractTemplate(
            "basic-fungible-token",
            "Basic Fungible Token",
            ContractCategory.FUNGIBLE_TOKEN,
            Complexity.SIMPLE,
            ("token", "vault", "mint"),
            FUNGIBLE_TOKEN_TEMPLATE,
        ),
        ContractTemplate(
            "basic-marketplace",
            "Basic NFT Marketplace",
            ContractCategory.MARKETPLACE,
            Complexity.INTERMEDIATE,
            ("marketplace", "listing", "escrow", "commission"),
            MARKETPLACE_TEMPLATE,
        ),
        ContractTemplate(
            "basic-dao",
            "Basic DAO",
            ContractCategory.DAO,
            Complexity.INTERMEDIATE,
            ("dao", "proposal", "voting", "quorum"),
            DAO_TEMPLATE,
        ),
        ContractTemplate(
            "basic-utility",
            "Basic Utility Contract",
            ContractCategory.UTILITY,
            Complexity.SIMPLE,
            ("utility", "counter"),
            UTILITY_TEMPLATE,
        ),
        ContractTemplate(
            "generic",
            "Generic Contract",
            ContractCategory.GENERIC,
            Complexity.SIMPLE,
            ("generic",),
            GENERIC_TEMPLATE,
        ),
    )
}

# Categories without a dedicated template borrow the closest one
_TEMPLATE_ALIASES: Dict[ContractCategory, ContractCategory] = {
    ContractCategory.DEFI: ContractCategory.FUNGIBLE_TOKEN,
}


def template_for(category: ContractCategory) -> ContractTemplate:
    category = _TEMPLATE_ALIASES.get(category, category)
    return TEMPLATES.get(category, TEMPLATES[ContractCategory.GENERIC])


def render_template(category: ContractCategory, contract_name: str = DEFAULT_CONTRACT_NAME) -> str:
    """The fallback template provider: ``(category) -> str``."""
    return template_for(category).render(contract_name)


def emergency_template() -> str:
    return EMERGENCY_TEMPLATE
